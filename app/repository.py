"""
COMMITTEE REPOSITORY
====================

Typed data access for committees, members, draws and
settlement rows (UserWiseDraw).

Services never build queries themselves. They receive a
CommitteeRepository bound either to the ambient session
(read_repository) or to a unit of work (unit_of_work), which
commits on success and rolls back on ANY error.
"""

import logging
from contextlib import contextmanager

from flask import current_app, has_app_context
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models import (
    Committee, CommitteeMember, CommitteeDraw, UserWiseDraw, User
)
from app.exceptions import ConflictError

logger = logging.getLogger(__name__)


class CommitteeRepository:
    """All persistence operations of the committee engine, bound to one session."""

    def __init__(self, session):
        self.session = session

    # ============================================================
    # COMMITTEES
    # ============================================================

    def get_committee(self, committee_id):
        return self.session.get(Committee, committee_id)

    def get_committee_for_update(self, committee_id):
        """Load and row-lock a committee (no-op lock on SQLite)."""
        return self.session.query(Committee).filter_by(
            id=committee_id
        ).with_for_update().populate_existing().first()

    def list_committees_by_owner(self, owner_id):
        return self.session.query(Committee).filter_by(
            created_by=owner_id
        ).order_by(Committee.id).all()

    def list_committees_for_member(self, user_id):
        return self.session.query(Committee).join(
            CommitteeMember, CommitteeMember.committee_id == Committee.id
        ).filter(
            CommitteeMember.user_id == user_id
        ).order_by(Committee.id).all()

    def add_committee(self, committee):
        self.session.add(committee)
        self.session.flush()
        return committee

    def update_committee_status(self, committee, status, updated_by=None):
        committee.status = status.value
        if updated_by is not None:
            committee.updated_by = updated_by
        self.session.flush()
        return committee

    # ============================================================
    # MEMBERS
    # ============================================================

    def find_member(self, committee_id, user_id):
        return self.session.query(CommitteeMember).filter_by(
            committee_id=committee_id,
            user_id=user_id
        ).first()

    def count_members(self, committee_id):
        return self.session.query(CommitteeMember).filter_by(
            committee_id=committee_id
        ).count()

    def list_members_with_users(self, committee_id):
        """Return (CommitteeMember, User) pairs ordered by user id."""
        return self.session.query(CommitteeMember, User).join(
            User, User.id == CommitteeMember.user_id
        ).filter(
            CommitteeMember.committee_id == committee_id
        ).order_by(CommitteeMember.user_id).all()

    def add_member(self, committee_id, user_id):
        membership = CommitteeMember(committee_id=committee_id, user_id=user_id)
        self.session.add(membership)
        self.session.flush()
        return membership

    # ============================================================
    # DRAWS
    # ============================================================

    def add_draws(self, draws):
        """Insert a whole draw schedule in one batch."""
        self.session.add_all(draws)
        self.session.flush()
        return draws

    def get_draw(self, draw_id):
        return self.session.get(CommitteeDraw, draw_id)

    def list_draws(self, committee_id):
        return self.session.query(CommitteeDraw).filter_by(
            committee_id=committee_id
        ).order_by(CommitteeDraw.draw_date, CommitteeDraw.id).all()

    def count_draws(self, committee_id):
        return self.session.query(CommitteeDraw).filter_by(
            committee_id=committee_id
        ).count()

    def count_claimed_draws(self, committee_id):
        return self.session.query(CommitteeDraw).filter_by(
            committee_id=committee_id,
            is_completed=True
        ).count()

    def update_draw_amount(self, draw, amount):
        draw.amount = amount
        self.session.flush()
        return draw

    # ============================================================
    # SETTLEMENT ROWS (USER WISE DRAW)
    # ============================================================

    def find_settlement(self, committee_id, draw_id, user_id):
        return self.session.query(UserWiseDraw).filter_by(
            committee_id=committee_id,
            draw_id=draw_id,
            user_id=user_id
        ).first()

    def find_completed_settlement_for_member(self, committee_id, user_id):
        return self.session.query(UserWiseDraw).filter_by(
            committee_id=committee_id,
            user_id=user_id,
            is_completed=True
        ).first()

    def find_completed_settlement_for_draw(self, committee_id, draw_id):
        return self.session.query(UserWiseDraw).filter_by(
            committee_id=committee_id,
            draw_id=draw_id,
            is_completed=True
        ).first()

    def list_settlements_for_member(self, committee_id, user_id):
        return self.session.query(UserWiseDraw).filter_by(
            committee_id=committee_id,
            user_id=user_id
        ).order_by(UserWiseDraw.draw_id).all()

    def list_settlements_for_draw(self, committee_id, draw_id):
        return self.session.query(UserWiseDraw).filter_by(
            committee_id=committee_id,
            draw_id=draw_id
        ).all()

    def list_settlements_for_committee(self, committee_id):
        return self.session.query(UserWiseDraw).filter_by(
            committee_id=committee_id
        ).all()

    def upsert_settlement(self, committee_id, draw_id, user_id, amount_paid, fine_paid, now):
        """Insert or refresh the unique (committee, draw, user) settlement row."""
        row = self.find_settlement(committee_id, draw_id, user_id)
        if row:
            row.amount_paid = amount_paid
            row.fine_paid = fine_paid
            row.updated_at = now
        else:
            row = UserWiseDraw(
                committee_id=committee_id,
                draw_id=draw_id,
                user_id=user_id,
                amount_paid=amount_paid,
                fine_paid=fine_paid,
                is_completed=False,
                created_at=now,
                updated_at=now
            )
            self.session.add(row)
        self.session.flush()
        return row

    def mark_settlement_completed(self, row, now):
        row.is_completed = True
        row.updated_at = now
        row.draw.is_completed = True
        self.session.flush()
        return row


# ============================================================
# UNIT OF WORK
# ============================================================

def _default_timeout():
    if has_app_context():
        return current_app.config.get('TRANSACTION_TIMEOUT_SECONDS')
    return None


def _apply_statement_timeout(session, timeout):
    if not timeout:
        return
    if session.get_bind().dialect.name != 'postgresql':
        return
    session.execute(text(f"SET LOCAL statement_timeout = {int(timeout * 1000)}"))


def read_repository(session=None):
    """Repository bound to the ambient session, for read paths."""
    return CommitteeRepository(session or db.session)


@contextmanager
def unit_of_work(session=None, timeout=None):
    """
    Run a block of repository calls as ONE transaction.

    ATOMIC: commit when the block finishes, rollback on any error.
    A storage constraint violation means a concurrent writer got
    there first and surfaces as ConflictError.
    """
    session = session or db.session
    if timeout is None:
        timeout = _default_timeout()

    try:
        _apply_statement_timeout(session, timeout)
        yield CommitteeRepository(session)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning("Unit of work rejected by storage constraint: %s", e.orig)
        raise ConflictError(
            "Request conflicts with the current committee state",
            description=str(e.orig)
        ) from e
    except Exception:
        session.rollback()
        raise
