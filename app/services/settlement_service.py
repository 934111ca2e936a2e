"""
SETTLEMENT SERVICE
==================

Handles:
- Fine calculation (per day late, from the committee's fine start date)
- Amount due per member for a draw (NORMAL and LOTTERY committees)
- Recording a member's payment for a draw (UserWiseDraw upsert)
- Per-draw payment listing (one row per member)
- Setting a draw's agreed payout amount (set-once)

BUSINESS RULES:
1. NORMAL:  due = (committee amount - draw amount) / member count
2. LOTTERY: due = draw amount, or the member's settled amount plus
            the lottery bonus once they have already taken a draw
3. Fines are NOT clamped: before the fine start date they are negative
4. A draw's amount can be set once and never below its minimum
"""

import logging
from datetime import datetime

from app.exceptions import (
    CommitteeError, ConflictError, InternalError, NotFoundError, ValidationError
)
from app.models import CommitteeType
from app.repository import read_repository, unit_of_work
from app.services.authorization_service import (
    require_admin, require_owner, require_owner_or_not_found
)
from app.services.committee_service import get_committee_or_404
from app.services.helpers import date_only, require_id, to_money

logger = logging.getLogger(__name__)


def get_draw_or_404(repo, committee, draw_id):
    draw = repo.get_draw(draw_id)
    if not draw or draw.committee_id != committee.id:
        raise NotFoundError("Draw not found", "Unable to locate draw for committee")
    return draw


def _ensure_draw_started(draw, now):
    if not draw.has_started(now):
        raise ConflictError("Draw not started yet")


def _member_count_or_error(repo, committee):
    total_members = repo.count_members(committee.id)
    if total_members == 0:
        raise ConflictError("No committee members", "Committee has no members attached")
    return total_members


# ============================================================
# FINE CALCULATION
# ============================================================

def calculate_fine_amount(committee, draw, today):
    """
    Fine = whole days since the fine start date * per-day fine.

    Compared date-only. No fine start date configured means no fine.
    """
    if draw is None or draw.draw_date is None:
        return to_money(0)

    if not committee.fine_start_date:
        return to_money(0)

    days_late = (date_only(today) - date_only(committee.fine_start_date)).days
    return to_money(days_late * to_money(committee.fine_amount))


# ============================================================
# AMOUNT DUE
# ============================================================

def _calculate_normal_due(repo, committee, draw, now):
    _ensure_draw_started(draw, now)
    total_members = _member_count_or_error(repo, committee)

    remaining = to_money(committee.amount) - to_money(draw.amount)
    return to_money(remaining / total_members)


def _calculate_lottery_due(repo, committee, draw, user_id, now):
    lottery_amount = to_money(committee.lottery_amount)
    if lottery_amount <= 0:
        raise ConflictError("Lottery amount is not set")

    _ensure_draw_started(draw, now)
    _member_count_or_error(repo, committee)

    taken = repo.find_completed_settlement_for_member(committee.id, user_id)
    if taken:
        return to_money(to_money(taken.amount_paid) + lottery_amount)
    return to_money(draw.amount)


def calculate_due_amount(repo, committee, draw, user_id, now):
    if committee.committee_type == CommitteeType.NORMAL.value:
        return _calculate_normal_due(repo, committee, draw, now)
    if committee.committee_type == CommitteeType.LOTTERY.value:
        return _calculate_lottery_due(repo, committee, draw, user_id, now)
    raise ConflictError("Invalid committee type")


# ============================================================
# RECORD PAYMENT (ATOMIC)
# ============================================================

def record_payment(admin, payload, now=None, session=None):
    """
    Mark a member's payment for a draw.

    Computes amount due and fine, then upserts the member's
    UserWiseDraw row for (committee, draw, user).

    Returns: UserWiseDraw
    """
    require_admin(admin)

    committee_id = require_id(payload, 'committee_id')
    draw_id = require_id(payload, 'draw_id')
    user_id = require_id(payload, 'user_id')
    now = now or datetime.now()

    try:
        with unit_of_work(session) as repo:
            committee = get_committee_or_404(repo, committee_id)
            require_owner_or_not_found(admin, committee)

            draw = get_draw_or_404(repo, committee, draw_id)

            if not repo.find_member(committee_id, user_id):
                raise NotFoundError("User is not a member of this committee")

            fine_amount = calculate_fine_amount(committee, draw, now)
            due_amount = calculate_due_amount(repo, committee, draw, user_id, now)

            row = repo.upsert_settlement(
                committee_id=committee_id,
                draw_id=draw_id,
                user_id=user_id,
                amount_paid=to_money(due_amount),
                fine_paid=to_money(fine_amount),
                now=now
            )

        logger.info(
            "Payment recorded for user %s, draw %s, committee %s: amount=%s fine=%s",
            user_id, draw_id, committee_id, due_amount, fine_amount
        )
        return row

    except CommitteeError as e:
        logger.warning(
            "Recording payment failed (committee=%s, draw=%s, user=%s): %s",
            committee_id, draw_id, user_id, e
        )
        raise
    except Exception as e:
        logger.exception(
            "Recording payment failed (committee=%s, draw=%s, user=%s)",
            committee_id, draw_id, user_id
        )
        raise InternalError(f"Failed to record payment: {str(e)}")


# ============================================================
# PAYMENTS FOR ONE DRAW
# ============================================================

def _placeholder_row(committee_id, draw_id, member):
    return {
        'id': None,
        'committee_id': committee_id,
        'draw_id': draw_id,
        'user_id': member.id,
        'user': dict(
            member.to_dict(),
            is_draw_completed=False,
            amount_paid=0.0,
            fine_paid=0.0,
        ),
        'created_at': None,
        'updated_at': None,
    }


def get_user_wise_draw_paid_amount(user, committee_id, draw_id, now=None, session=None):
    """
    Settlement rows for one draw, exactly one per current member.
    Members without a row get a zero placeholder.
    """
    now = now or datetime.now()
    repo = read_repository(session)

    committee = get_committee_or_404(repo, committee_id)
    draw = get_draw_or_404(repo, committee, draw_id)

    if date_only(draw.draw_date) > date_only(now):
        raise ConflictError("Draw not started yet")

    rows = {r.user_id: r for r in repo.list_settlements_for_draw(committee_id, draw_id)}

    result = []
    for _membership, member in repo.list_members_with_users(committee_id):
        row = rows.get(member.id)
        result.append(row.to_dict() if row else _placeholder_row(committee_id, draw_id, member))
    return result


# ============================================================
# DRAW AMOUNT (SET-ONCE)
# ============================================================

def update_draw_amount(admin, payload, now=None, session=None):
    """
    Set the agreed payout of a draw.

    Only the committee owner, only once, never below the
    draw's minimum amount.
    """
    require_admin(admin)

    committee_id = require_id(payload, 'committee_id')
    draw_id = require_id(payload, 'draw_id')
    if payload.get('amount') is None:
        raise ValidationError("amount is required")
    amount = to_money(payload.get('amount'))
    now = now or datetime.now()

    try:
        with unit_of_work(session) as repo:
            committee = repo.get_committee_for_update(committee_id)
            if not committee:
                raise NotFoundError("Committee not found")
            require_owner(admin, committee, "You are not authorized to update draw amount")

            draw = get_draw_or_404(repo, committee, draw_id)
            _ensure_draw_started(draw, now)

            if draw.is_amount_set():
                raise ConflictError(
                    "Draw amount already updated",
                    "Draw amount cannot be updated once it has been set"
                )

            min_amount = to_money(draw.min_amount)
            if amount < min_amount:
                raise ConflictError(
                    f"Draw amount cannot be less than the {min_amount}",
                    f"Draw amount must be at least {min_amount}"
                )

            repo.update_draw_amount(draw, amount)

        logger.info("Draw %s of committee %s set to %s by admin %s",
                    draw_id, committee_id, amount, admin.id)
        return draw

    except CommitteeError as e:
        logger.warning("Updating draw amount failed (committee=%s, draw=%s): %s",
                       committee_id, draw_id, e)
        raise
    except Exception as e:
        logger.exception("Updating draw amount failed (committee=%s, draw=%s)",
                         committee_id, draw_id)
        raise InternalError(f"Failed to update draw amount: {str(e)}")


def list_draws(user, committee_id, session=None):
    """Draw schedule of a committee, earliest first."""
    repo = read_repository(session)
    get_committee_or_404(repo, committee_id)
    return repo.list_draws(committee_id)
