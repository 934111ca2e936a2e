"""
COMMITTEE ROUTES
================
JSON endpoints for the committee registry and enrollment.
"""

from decimal import Decimal

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from app.errors import error_response
from app.services.committee_service import (
    create_committee, list_committees, get_committee,
    get_committee_members, get_committee_analysis
)
from app.services.membership_service import add_member

committees_bp = Blueprint('committees', __name__, url_prefix='/committees')


def _plain(value):
    """Decimals and datetimes in service results -> JSON friendly values."""
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return value


# ============== LIST MY COMMITTEES ==============
@committees_bp.route('', methods=['GET'])
@login_required
def list_committees_route():
    committees = list_committees(current_user)
    return jsonify([c.to_dict() for c in committees])


# ============== CREATE NEW COMMITTEE ==============
@committees_bp.route('', methods=['POST'])
@login_required
def create_committee_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object', 400)

    committee = create_committee(current_user, data)
    return jsonify(committee.to_dict()), 201


# ============== VIEW SINGLE COMMITTEE ==============
@committees_bp.route('/<int:committee_id>', methods=['GET'])
@login_required
def view_committee(committee_id):
    return jsonify(get_committee(committee_id).to_dict())


# ============== MEMBERS ==============
@committees_bp.route('/<int:committee_id>/members', methods=['GET'])
@login_required
def list_members_route(committee_id):
    return jsonify(get_committee_members(current_user, committee_id))


@committees_bp.route('/<int:committee_id>/members', methods=['POST'])
@login_required
def add_member_route(committee_id):
    data = request.get_json(silent=True) or {}

    if not data.get('phone_no'):
        return error_response('Phone number is required!', 400)

    user = add_member(current_user, committee_id, {
        'phone_no': str(data.get('phone_no')),
        'name': data.get('name'),
        'email': data.get('email'),
        'password': data.get('password'),
    })
    return jsonify(user.to_dict()), 201


# ============== ANALYSIS ==============
@committees_bp.route('/<int:committee_id>/analysis', methods=['GET'])
@login_required
def committee_analysis_route(committee_id):
    return jsonify(_plain(get_committee_analysis(current_user, committee_id)))
