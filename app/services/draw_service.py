"""
DRAW SERVICE
============

Handles claiming a draw: marking that a member has taken the
payout of a specific draw.

STRICT RULES (checked read-then-write inside one unit of work,
with the committee row locked):
- A member can take a draw only once per committee
- A draw can be taken by only one member
- The member's payment for that draw must be recorded first

Partial unique indexes on user_wise_draws back both rules, so a
lost race surfaces as ConflictError instead of a double claim.
"""

import logging
from datetime import datetime

from app.exceptions import CommitteeError, ConflictError, InternalError, NotFoundError
from app.models import CommitteeStatus
from app.repository import unit_of_work
from app.services.authorization_service import require_admin, require_owner
from app.services.helpers import require_id
from app.services.settlement_service import get_draw_or_404

logger = logging.getLogger(__name__)


def complete_draw(admin, payload, now=None, session=None):
    """
    Mark (committee, draw, user) as the completed claim.

    When this closes the last open draw of an ACTIVE committee,
    the committee is marked COMPLETED.

    Returns: UserWiseDraw
    """
    require_admin(admin)

    committee_id = require_id(payload, 'committee_id')
    draw_id = require_id(payload, 'draw_id')
    user_id = require_id(payload, 'user_id')
    now = now or datetime.now()

    try:
        with unit_of_work(session) as repo:
            committee = repo.get_committee_for_update(committee_id)
            if not committee:
                raise NotFoundError("Committee not found")
            require_owner(admin, committee, "You are not authorized to complete this draw")

            get_draw_or_404(repo, committee, draw_id)

            if repo.find_completed_settlement_for_member(committee_id, user_id):
                raise ConflictError("User has already taken the draw")

            if repo.find_completed_settlement_for_draw(committee_id, draw_id):
                raise ConflictError("This draw is already taken by another user")

            row = repo.find_settlement(committee_id, draw_id, user_id)
            if not row:
                raise NotFoundError("First mark paid payment")

            repo.mark_settlement_completed(row, now)

            if committee.status == CommitteeStatus.ACTIVE.value and \
                    repo.count_claimed_draws(committee_id) == repo.count_draws(committee_id):
                repo.update_committee_status(committee, CommitteeStatus.COMPLETED, updated_by=admin.id)
                logger.info("All draws of committee %s claimed, committee completed", committee_id)

        logger.info("Draw %s of committee %s taken by user %s", draw_id, committee_id, user_id)
        return row

    except CommitteeError as e:
        logger.warning(
            "Completing draw failed (committee=%s, draw=%s, user=%s): %s",
            committee_id, draw_id, user_id, e
        )
        raise
    except Exception as e:
        logger.exception(
            "Completing draw failed (committee=%s, draw=%s, user=%s)",
            committee_id, draw_id, user_id
        )
        raise InternalError(f"Failed to complete draw: {str(e)}")
