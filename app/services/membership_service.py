"""
MEMBERSHIP SERVICE
==================

Handles:
- Enrolling members (creating the user on the fly if needed)
- Generating the draw schedule when the committee fills
- Activating the committee

CRITICAL: enrollment is ONE unit of work. If anything fails,
the membership, a freshly registered user, the draws and the
status change are all rolled back together.
"""

import logging
from datetime import datetime

from flask import current_app, has_app_context

from app.exceptions import (
    CommitteeError, ConflictError, InternalError, NotFoundError, ValidationError
)
from app.models import CommitteeDraw, CommitteeStatus, UserRole
from app.repository import unit_of_work
from app.services.authorization_service import require_admin, require_owner_or_not_found
from app.services.helpers import add_months, at_draw_hour, to_money
from app.services.user_service import (
    DEFAULT_MEMBER_PASSWORD, find_user_by_phone, register_user
)

logger = logging.getLogger(__name__)


def _default_password():
    if has_app_context():
        return current_app.config.get('DEFAULT_MEMBER_PASSWORD', DEFAULT_MEMBER_PASSWORD)
    return DEFAULT_MEMBER_PASSWORD


def _registration_payload(member_input, admin):
    phone_no = member_input['phone_no']
    return {
        'phone_no': phone_no,
        'name': member_input.get('name') or phone_no,
        'email': member_input.get('email') or f"{phone_no}@committee.local",
        'password': member_input.get('password') or _default_password(),
        'role': UserRole.USER.value,
        'created_by': admin.id,
    }


# ============================================================
# DRAW SCHEDULE
# ============================================================

def build_draw_schedule(committee, now):
    """
    One draw per month of the committee's duration.

    Draw i is due i calendar months after the start date (or
    `now` when the committee has none), always at 19:00. The
    minimum payout is the committee amount split evenly.
    """
    base_date = committee.start_date or now
    min_amount = to_money(to_money(committee.amount) / committee.max_members)

    draws = []
    for index in range(committee.no_of_months):
        draws.append(CommitteeDraw(
            committee_id=committee.id,
            draw_date=at_draw_hour(add_months(base_date, index)),
            min_amount=min_amount,
            amount=to_money(0),
            paid_amount=to_money(0),
            is_completed=False,
            created_at=now
        ))
    return draws


# ============================================================
# ADD MEMBER
# ============================================================

def add_member(admin, committee_id, member_input, now=None, session=None):
    """
    Enroll a user (looked up by phone number) into a committee.

    When this member makes the committee full, the draw schedule
    is created and the committee becomes ACTIVE. That happens only
    once: a full committee rejects further enrollment.

    Returns: the (possibly newly registered) User
    """
    require_admin(admin)

    phone_no = (member_input.get('phone_no') or '').strip()
    if not phone_no:
        raise ValidationError("Phone number is required")
    member_input = dict(member_input, phone_no=phone_no)

    now = now or datetime.now()

    try:
        with unit_of_work(session) as repo:
            committee = repo.get_committee_for_update(committee_id)
            if not committee:
                raise NotFoundError("Committee not found")
            require_owner_or_not_found(admin, committee)

            user = find_user_by_phone(phone_no, session=repo.session)
            if not user:
                user = register_user(
                    _registration_payload(member_input, admin),
                    session=repo.session
                )

            if repo.find_member(committee_id, user.id):
                raise ConflictError("User already added to committee member")

            if committee.status != CommitteeStatus.INACTIVE.value:
                raise ConflictError("Max members reached for this committee")

            repo.add_member(committee_id, user.id)

            # Re-count after insert
            member_count = repo.count_members(committee_id)

            if member_count > committee.max_members:
                raise ConflictError("Max members reached for this committee")

            if member_count == committee.max_members:
                draws = build_draw_schedule(committee, now)
                logger.info("Generating %d draws for committee %s", len(draws), committee_id)
                repo.add_draws(draws)
                repo.update_committee_status(
                    committee, CommitteeStatus.ACTIVE, updated_by=admin.id
                )

            user_id = user.id

        logger.info(
            "User %s (phone=%s) added to committee %s by admin %s",
            user_id, phone_no, committee_id, admin.id
        )
        return user

    except CommitteeError as e:
        logger.warning(
            "Committee member addition failed (committee=%s, phone=%s, admin=%s): %s",
            committee_id, phone_no, admin.id, e
        )
        raise
    except Exception as e:
        logger.exception(
            "Committee member addition failed (committee=%s, phone=%s, admin=%s)",
            committee_id, phone_no, admin.id
        )
        raise InternalError(f"Failed to add member: {str(e)}")
