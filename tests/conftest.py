from datetime import datetime

import pytest

from app import create_app
from app.extensions import db
from app.models import User, UserRole
from app.services.committee_service import create_committee
from app.services.membership_service import add_member
from config import TestingConfig

# Committees in tests start on 2025-01-01; draw 1 is due 2025-01-01 19:00
START = datetime(2025, 1, 1)
NOW = datetime(2025, 1, 10, 12, 0)


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


def _make_user(phone_no, role=UserRole.USER.value, name=None, password='secret123'):
    user = User(name=name or phone_no, phone_no=phone_no, role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def make_user(app_ctx):
    return _make_user


@pytest.fixture
def admin(app_ctx):
    return _make_user('9000000001', role=UserRole.ADMIN.value, name='Admin One')


@pytest.fixture
def other_admin(app_ctx):
    return _make_user('9000000002', role=UserRole.ADMIN.value, name='Admin Two')


@pytest.fixture
def member_user(app_ctx):
    return _make_user('9100000001', name='Plain Member')


@pytest.fixture
def make_committee(admin):
    def _make(owner=None, **overrides):
        data = {
            'name': 'Office Committee',
            'amount': 1200,
            'max_members': 4,
            'no_of_months': 4,
            'start_date': START,
        }
        data.update(overrides)
        return create_committee(owner or admin, data, now=START)
    return _make


@pytest.fixture
def fill_committee(admin):
    """Enroll `count` members (phones 98000000xx); returns the users."""
    def _fill(committee, count=None, owner=None, now=NOW):
        count = committee.max_members if count is None else count
        users = []
        for index in range(count):
            users.append(add_member(
                owner or admin,
                committee.id,
                {'phone_no': f'98000000{index:02d}', 'name': f'Member {index}'},
                now=now
            ))
        return users
    return _fill
