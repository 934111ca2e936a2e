"""
COMMITTEE SERVICE
=================

Handles:
- Creating committees (always INACTIVE, no draws yet)
- Listing committees visible to a caller
- Committee details, member list and per-caller analysis
"""

import logging
from datetime import datetime

from app.exceptions import (
    CommitteeError, InternalError, NotFoundError, ValidationError
)
from app.models import Committee, CommitteeStatus, CommitteeType
from app.repository import read_repository, unit_of_work
from app.services.authorization_service import is_admin, require_admin
from app.services.helpers import add_months, at_draw_hour, parse_datetime, to_money

logger = logging.getLogger(__name__)


# ============================================================
# VALIDATION
# ============================================================

def _require_int(data, field, minimum):
    value = data.get(field)
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} is required and must be an integer")
    if value < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return value


def _optional_money(data, field):
    value = to_money(data.get(field) or 0)
    if value < 0:
        raise ValidationError(f"{field} cannot be negative")
    return value


def _parse_committee_type(value):
    if not value:
        return CommitteeType.NORMAL
    try:
        return CommitteeType(str(value).upper())
    except ValueError:
        raise ValidationError(f"Invalid committee type: {value}")


# ============================================================
# CREATE COMMITTEE
# ============================================================

def create_committee(admin, data, now=None, session=None):
    """
    Create a new committee owned by `admin`.

    The committee starts INACTIVE; draws are generated later,
    when enrollment fills it.
    """
    require_admin(admin)

    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError("Committee name is required")

    amount = to_money(data.get('amount'))
    if amount <= 0:
        raise ValidationError("Committee amount must be greater than 0")

    max_members = _require_int(data, 'max_members', 1)
    no_of_months = _require_int(data, 'no_of_months', 1)
    extra_days_for_fine = 0
    if data.get('extra_days_for_fine') is not None:
        extra_days_for_fine = _require_int(data, 'extra_days_for_fine', 0)

    fine_amount = _optional_money(data, 'fine_amount')
    committee_type = _parse_committee_type(data.get('committee_type'))
    lottery_amount = _optional_money(data, 'lottery_amount')

    if committee_type == CommitteeType.LOTTERY and lottery_amount <= 0:
        raise ValidationError("Lottery amount is required")

    start_date = parse_datetime(data.get('start_date'), 'start_date')
    fine_start_date = parse_datetime(data.get('fine_start_date'), 'fine_start_date')

    end_date = None
    if start_date:
        end_date = at_draw_hour(add_months(start_date, no_of_months))

    now = now or datetime.now()

    try:
        with unit_of_work(session) as repo:
            committee = repo.add_committee(Committee(
                name=name,
                amount=amount,
                max_members=max_members,
                no_of_months=no_of_months,
                status=CommitteeStatus.INACTIVE.value,
                committee_type=committee_type.value,
                created_by=admin.id,
                updated_by=admin.id,
                start_date=start_date,
                end_date=end_date,
                fine_start_date=fine_start_date,
                fine_amount=fine_amount,
                extra_days_for_fine=extra_days_for_fine,
                lottery_amount=lottery_amount,
                created_at=now,
                updated_at=now
            ))

        logger.info("Committee %s '%s' created by admin %s", committee.id, name, admin.id)
        return committee

    except CommitteeError as e:
        logger.warning("Committee creation failed for admin %s (%s): %s", admin.id, name, e)
        raise
    except Exception as e:
        logger.exception("Committee creation failed for admin %s (%s)", admin.id, name)
        raise InternalError(f"Failed to create committee: {str(e)}")


# ============================================================
# READ PATHS
# ============================================================

def list_committees(user, session=None):
    """Admins see committees they created, everyone else the ones they belong to."""
    repo = read_repository(session)
    if is_admin(user):
        return repo.list_committees_by_owner(user.id)
    return repo.list_committees_for_member(user.id)


def get_committee_or_404(repo, committee_id):
    committee = repo.get_committee(committee_id)
    if not committee:
        raise NotFoundError("Committee not found")
    return committee


def get_committee(committee_id, session=None):
    return get_committee_or_404(read_repository(session), committee_id)


def get_committee_members(user, committee_id, session=None):
    """
    Every member with their totals across all settlement rows
    of this committee.
    """
    repo = read_repository(session)
    get_committee_or_404(repo, committee_id)

    settlements = repo.list_settlements_for_committee(committee_id)
    members = []
    for membership, member in repo.list_members_with_users(committee_id):
        rows = [s for s in settlements if s.user_id == member.id]
        members.append({
            'id': membership.id,
            'committee_id': membership.committee_id,
            'user_id': member.id,
            'joined_at': membership.joined_at.isoformat() if membership.joined_at else None,
            'user': dict(
                member.to_dict(),
                amount_paid=float(sum((to_money(r.amount_paid) for r in rows), to_money(0))),
                fine_paid=float(sum((to_money(r.fine_paid) for r in rows), to_money(0))),
                is_draw_completed=any(r.is_completed for r in rows),
            ),
        })
    return members


def get_committee_analysis(user, committee_id, session=None):
    """
    Committee metadata plus aggregates.
    Paid and fine totals cover the CALLER's own settlement rows.
    """
    repo = read_repository(session)
    committee = get_committee_or_404(repo, committee_id)

    rows = repo.list_settlements_for_member(committee_id, user.id)
    total_paid = sum((to_money(r.amount_paid) for r in rows), to_money(0))
    total_fine = sum((to_money(r.fine_paid) for r in rows), to_money(0))

    return {
        'committee_id': committee.id,
        'name': committee.name,
        'amount': to_money(committee.amount),
        'max_members': committee.max_members,
        'status': committee.status,
        'committee_type': committee.committee_type,
        'no_of_months': committee.no_of_months,
        'fine_amount': to_money(committee.fine_amount),
        'extra_days_for_fine': committee.extra_days_for_fine,
        'start_date': committee.start_date,
        'analysis': {
            'total_members': repo.count_members(committee_id),
            'total_committee_amount': to_money(committee.amount),
            'total_paid_amount': total_paid,
            'total_fine_amount': total_fine,
            'draws_paid': len(rows),
            'total_draws': repo.count_draws(committee_id),
        },
    }
