"""Tests for fines, amount due, payment recording and draw amounts."""

from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.extensions import db
from app.models import CommitteeDraw, UserWiseDraw
from app.repository import read_repository
from app.services.authorization_service import AuthorizationError
from app.services.draw_service import complete_draw
from app.services.settlement_service import (
    calculate_due_amount, calculate_fine_amount, get_user_wise_draw_paid_amount,
    list_draws, record_payment, update_draw_amount
)

from conftest import NOW

FEB_10 = datetime(2025, 2, 10, 12, 0)


def _payload(committee, draw, user):
    return {'committee_id': committee.id, 'draw_id': draw.id, 'user_id': user.id}


@pytest.fixture
def active_committee(make_committee, fill_committee):
    committee = make_committee()
    users = fill_committee(committee)
    return committee, users, list_draws(None, committee.id)


@pytest.fixture
def lottery_committee(make_committee, fill_committee):
    committee = make_committee(committee_type='LOTTERY', lottery_amount=50)
    users = fill_committee(committee)
    return committee, users, list_draws(None, committee.id)


# ============================================================
# FINE CALCULATION
# ============================================================

class TestFineCalculation:

    fine_start = datetime(2025, 3, 1, 18, 45)
    committee = SimpleNamespace(fine_start_date=fine_start, fine_amount=Decimal('10'))
    draw = SimpleNamespace(draw_date=datetime(2025, 3, 1, 19, 0))

    def test_fine_after_five_days(self):
        today = datetime(2025, 3, 6, 8, 0)
        assert calculate_fine_amount(self.committee, self.draw, today) == Decimal('50.00')

    def test_no_fine_on_fine_start_date(self):
        today = datetime(2025, 3, 1, 23, 59)
        assert calculate_fine_amount(self.committee, self.draw, today) == Decimal('0.00')

    def test_fine_grows_with_days_elapsed(self):
        fines = [
            calculate_fine_amount(self.committee, self.draw, self.fine_start + timedelta(days=d))
            for d in range(0, 10)
        ]
        assert fines == sorted(fines)
        assert fines[-1] == Decimal('90.00')

    def test_fine_before_start_date_is_negative(self):
        today = datetime(2025, 2, 27)
        assert calculate_fine_amount(self.committee, self.draw, today) == Decimal('-20.00')

    def test_no_fine_without_fine_start_date(self):
        committee = SimpleNamespace(fine_start_date=None, fine_amount=Decimal('10'))
        assert calculate_fine_amount(committee, self.draw, NOW) == Decimal('0.00')


# ============================================================
# RECORD PAYMENT
# ============================================================

def test_normal_due_splits_committee_amount(admin, active_committee):
    committee, users, draws = active_committee

    row = record_payment(admin, _payload(committee, draws[0], users[0]), now=NOW)

    assert row.amount_paid == Decimal('300.00')
    assert row.fine_paid == Decimal('0.00')
    assert row.is_completed is False
    assert row.to_dict()['user']['phone_no'] == users[0].phone_no


def test_normal_due_subtracts_draw_amount(admin, active_committee):
    committee, users, draws = active_committee
    update_draw_amount(admin, {
        'committee_id': committee.id, 'draw_id': draws[0].id, 'amount': 400
    }, now=NOW)

    row = record_payment(admin, _payload(committee, draws[0], users[1]), now=NOW)

    assert row.amount_paid == Decimal('200.00')


def test_payment_includes_fine(admin, make_committee, fill_committee):
    committee = make_committee(fine_amount=10, fine_start_date=datetime(2025, 1, 5))
    users = fill_committee(committee)
    draw = list_draws(admin, committee.id)[0]

    row = record_payment(admin, _payload(committee, draw, users[0]), now=NOW)

    assert row.fine_paid == Decimal('50.00')


def test_payment_rejected_before_draw_starts(admin, active_committee):
    committee, users, draws = active_committee

    with pytest.raises(ConflictError, match="not started"):
        record_payment(admin, _payload(committee, draws[1], users[0]), now=NOW)


def test_payment_is_upserted(admin, active_committee):
    committee, users, draws = active_committee
    payload = _payload(committee, draws[0], users[0])

    first = record_payment(admin, payload, now=NOW)
    later = NOW + timedelta(hours=3)
    second = record_payment(admin, payload, now=later)

    assert first.id == second.id
    assert second.created_at == NOW
    assert second.updated_at == later
    assert UserWiseDraw.query.filter_by(
        committee_id=committee.id, draw_id=draws[0].id, user_id=users[0].id
    ).count() == 1


def test_payment_requires_admin(active_committee):
    committee, users, draws = active_committee

    with pytest.raises(AuthorizationError):
        record_payment(users[0], _payload(committee, draws[0], users[0]), now=NOW)


def test_payment_hides_committee_from_other_admins(other_admin, active_committee):
    committee, users, draws = active_committee

    with pytest.raises(NotFoundError):
        record_payment(other_admin, _payload(committee, draws[0], users[0]), now=NOW)


def test_payment_requires_membership(admin, active_committee, member_user):
    committee, users, draws = active_committee

    with pytest.raises(NotFoundError):
        record_payment(admin, _payload(committee, draws[0], member_user), now=NOW)


def test_payment_rejects_draw_of_other_committee(admin, make_committee, active_committee):
    committee, users, draws = active_committee
    other = make_committee(name='Other')

    with pytest.raises(NotFoundError):
        record_payment(admin, {
            'committee_id': other.id, 'draw_id': draws[0].id, 'user_id': users[0].id
        }, now=NOW)


def test_payment_requires_ids(admin):
    with pytest.raises(ValidationError):
        record_payment(admin, {'committee_id': 1, 'draw_id': 1}, now=NOW)


def test_lottery_due_is_draw_amount_until_member_takes_a_draw(admin, lottery_committee):
    committee, users, draws = lottery_committee

    row = record_payment(admin, _payload(committee, draws[0], users[0]), now=NOW)
    assert row.amount_paid == Decimal('0.00')

    update_draw_amount(admin, {
        'committee_id': committee.id, 'draw_id': draws[0].id, 'amount': 300
    }, now=NOW)
    row = record_payment(admin, _payload(committee, draws[0], users[0]), now=NOW)
    assert row.amount_paid == Decimal('300.00')

    complete_draw(admin, _payload(committee, draws[0], users[0]), now=NOW)

    # The member who already took a draw pays their settled amount plus the bonus
    row = record_payment(admin, _payload(committee, draws[1], users[0]), now=FEB_10)
    assert row.amount_paid == Decimal('350.00')

    row = record_payment(admin, _payload(committee, draws[1], users[1]), now=FEB_10)
    assert row.amount_paid == Decimal('0.00')


# ============================================================
# PAYMENTS FOR ONE DRAW
# ============================================================

def test_paid_amount_lists_one_row_per_member(admin, active_committee):
    committee, users, draws = active_committee

    rows = get_user_wise_draw_paid_amount(admin, committee.id, draws[0].id, now=NOW)

    assert [r['user_id'] for r in rows] == [u.id for u in users]
    assert all(r['id'] is None for r in rows)
    assert all(r['user']['amount_paid'] == 0.0 for r in rows)
    assert all(r['user']['is_draw_completed'] is False for r in rows)


def test_paid_amount_listing_is_idempotent(admin, active_committee):
    committee, users, draws = active_committee
    record_payment(admin, _payload(committee, draws[0], users[2]), now=NOW)

    first = get_user_wise_draw_paid_amount(admin, committee.id, draws[0].id, now=NOW)
    second = get_user_wise_draw_paid_amount(admin, committee.id, draws[0].id, now=NOW)

    assert first == second
    assert sum(1 for r in first if r['id'] is None) == 3


def test_recorded_payment_is_listed_exactly(admin, make_committee, fill_committee):
    committee = make_committee(amount=1000, max_members=3, no_of_months=3,
                               fine_amount='2.5', fine_start_date=datetime(2025, 1, 7))
    users = fill_committee(committee)
    draw = list_draws(admin, committee.id)[0]

    row = record_payment(admin, _payload(committee, draw, users[1]), now=NOW)
    rows = get_user_wise_draw_paid_amount(users[0], committee.id, draw.id, now=NOW)

    listed = next(r for r in rows if r['user_id'] == users[1].id)
    assert listed['id'] == row.id
    assert listed['user']['amount_paid'] == 333.33
    assert listed['user']['fine_paid'] == 7.5


def test_paid_amount_uses_date_only_comparison(admin, active_committee):
    committee, users, draws = active_committee
    # draw 2 is due 2025-02-01 19:00; the morning of that day already counts
    rows = get_user_wise_draw_paid_amount(
        admin, committee.id, draws[1].id, now=datetime(2025, 2, 1, 9, 0)
    )
    assert len(rows) == 4

    with pytest.raises(ConflictError, match="not started"):
        get_user_wise_draw_paid_amount(
            admin, committee.id, draws[1].id, now=datetime(2025, 1, 31, 23, 0)
        )


def test_paid_amount_unknown_draw(admin, active_committee):
    committee, users, draws = active_committee

    with pytest.raises(NotFoundError):
        get_user_wise_draw_paid_amount(admin, committee.id, 9999, now=NOW)


# ============================================================
# DRAW AMOUNT
# ============================================================

def test_draw_amount_is_set_once(admin, active_committee):
    committee, users, draws = active_committee
    payload = {'committee_id': committee.id, 'draw_id': draws[0].id, 'amount': 350}

    draw = update_draw_amount(admin, payload, now=NOW)
    assert draw.amount == Decimal('350.00')

    with pytest.raises(ConflictError, match="already updated"):
        update_draw_amount(admin, dict(payload, amount=500), now=NOW)

    assert list_draws(admin, committee.id)[0].amount == Decimal('350.00')


def test_draw_amount_cannot_go_below_minimum(admin, active_committee):
    committee, users, draws = active_committee

    with pytest.raises(ConflictError, match="less than"):
        update_draw_amount(admin, {
            'committee_id': committee.id, 'draw_id': draws[0].id, 'amount': '299.99'
        }, now=NOW)

    assert list_draws(admin, committee.id)[0].amount == Decimal('0.00')


def test_draw_amount_requires_owner(other_admin, active_committee):
    committee, users, draws = active_committee

    with pytest.raises(AuthorizationError):
        update_draw_amount(other_admin, {
            'committee_id': committee.id, 'draw_id': draws[0].id, 'amount': 400
        }, now=NOW)


def test_draw_amount_rejected_before_draw_starts(admin, active_committee):
    committee, users, draws = active_committee

    with pytest.raises(ConflictError, match="not started"):
        update_draw_amount(admin, {
            'committee_id': committee.id, 'draw_id': draws[1].id, 'amount': 400
        }, now=NOW)


def test_draw_amount_requires_amount(admin, active_committee):
    committee, users, draws = active_committee

    with pytest.raises(ValidationError):
        update_draw_amount(admin, {'committee_id': committee.id, 'draw_id': draws[0].id})


@pytest.mark.parametrize('amount', ['NaN', 'Infinity'])
def test_draw_amount_rejects_non_finite_amount(admin, active_committee, amount):
    committee, users, draws = active_committee

    with pytest.raises(ValidationError, match="Invalid amount"):
        update_draw_amount(admin, {
            'committee_id': committee.id, 'draw_id': draws[0].id, 'amount': amount
        }, now=NOW)

    assert list_draws(admin, committee.id)[0].amount == Decimal('0.00')


def test_lottery_payment_requires_lottery_amount(admin, lottery_committee):
    committee, users, draws = lottery_committee
    committee.lottery_amount = 0
    db.session.commit()

    with pytest.raises(ConflictError, match="Lottery amount is not set"):
        record_payment(admin, _payload(committee, draws[0], users[0]), now=NOW)

    assert UserWiseDraw.query.filter_by(committee_id=committee.id).count() == 0


def test_due_amount_requires_members(make_committee):
    committee = make_committee()
    draw = CommitteeDraw(draw_date=datetime(2025, 1, 1, 19, 0), amount=Decimal('0'))

    with pytest.raises(ConflictError, match="No committee members"):
        calculate_due_amount(read_repository(), committee, draw, 1, NOW)
