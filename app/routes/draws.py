"""
DRAW ROUTES
===========
Draw schedule, payments and claims of a committee.
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from app.errors import error_response
from app.services.draw_service import complete_draw
from app.services.settlement_service import (
    list_draws, update_draw_amount, record_payment, get_user_wise_draw_paid_amount
)

draws_bp = Blueprint('draws', __name__, url_prefix='/committees/<int:committee_id>/draws')


# ============== DRAW SCHEDULE ==============
@draws_bp.route('', methods=['GET'])
@login_required
def list_draws_route(committee_id):
    return jsonify([d.to_dict() for d in list_draws(current_user, committee_id)])


# ============== SET DRAW AMOUNT (Admin) ==============
@draws_bp.route('/<int:draw_id>/amount', methods=['PATCH'])
@login_required
def update_draw_amount_route(committee_id, draw_id):
    data = request.get_json(silent=True) or {}

    if data.get('amount') is None:
        return error_response('Amount is required!', 400)

    draw = update_draw_amount(current_user, {
        'committee_id': committee_id,
        'draw_id': draw_id,
        'amount': data.get('amount'),
    })
    return jsonify(draw.to_dict())


# ============== PAYMENTS ==============
@draws_bp.route('/<int:draw_id>/payments', methods=['GET'])
@login_required
def list_payments_route(committee_id, draw_id):
    return jsonify(get_user_wise_draw_paid_amount(current_user, committee_id, draw_id))


@draws_bp.route('/<int:draw_id>/payments', methods=['POST'])
@login_required
def record_payment_route(committee_id, draw_id):
    data = request.get_json(silent=True) or {}

    if data.get('user_id') is None:
        return error_response('User is required!', 400)

    row = record_payment(current_user, {
        'committee_id': committee_id,
        'draw_id': draw_id,
        'user_id': data.get('user_id'),
    })
    return jsonify(row.to_dict())


# ============== CLAIM DRAW (Admin) ==============
@draws_bp.route('/<int:draw_id>/complete', methods=['POST'])
@login_required
def complete_draw_route(committee_id, draw_id):
    data = request.get_json(silent=True) or {}

    if data.get('user_id') is None:
        return error_response('User is required!', 400)

    row = complete_draw(current_user, {
        'committee_id': committee_id,
        'draw_id': draw_id,
        'user_id': data.get('user_id'),
    })
    return jsonify(row.to_dict())
