"""
AUTHENTICATION ROUTES
=====================
"""

from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, login_required, current_user
from app.extensions import db
from app.errors import error_response
from app.exceptions import CommitteeError
from app.services.user_service import authenticate, register_user

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}

    if not data.get('phone_no') or not data.get('password'):
        return error_response('Phone number and password are required!', 400)

    try:
        user = register_user({
            'name': data.get('name'),
            'phone_no': data.get('phone_no'),
            'email': data.get('email'),
            'password': data.get('password'),
        })
        db.session.commit()
    except CommitteeError:
        db.session.rollback()
        raise

    return jsonify(user.to_dict()), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}

    user = authenticate(data.get('phone_no', ''), data.get('password', ''))
    if not user:
        return error_response('Invalid phone number or password!', 401)

    login_user(user, remember=bool(data.get('remember', False)))
    return jsonify(user.to_dict())


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'You have been logged out.'})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify(current_user.to_dict())
