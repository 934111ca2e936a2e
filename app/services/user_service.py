"""
USER DIRECTORY
==============

Lookup and registration of users. Registration only flushes,
so it takes part in whatever transaction the caller has open
(e.g. member enrollment rolls back a freshly created user).
"""

import logging

from app.extensions import db
from app.exceptions import ConflictError, ValidationError
from app.models import User, UserRole

logger = logging.getLogger(__name__)

DEFAULT_MEMBER_PASSWORD = 'admin123'


def find_user_by_phone(phone_no, session=None):
    session = session or db.session
    return session.query(User).filter_by(phone_no=phone_no).first()


def find_user_by_email(email, session=None):
    session = session or db.session
    return session.query(User).filter_by(email=email).first()


def register_user(data, session=None):
    """
    Create a user from a dict with phone_no, name, email,
    password, role and created_by. Does NOT commit.
    """
    session = session or db.session

    phone_no = (data.get('phone_no') or '').strip()
    if not phone_no:
        raise ValidationError("Phone number is required")

    password = data.get('password') or DEFAULT_MEMBER_PASSWORD
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters")

    role = data.get('role') or UserRole.USER.value
    if role not in (UserRole.ADMIN.value, UserRole.USER.value):
        raise ValidationError(f"Unknown role: {role}")

    if find_user_by_phone(phone_no, session=session):
        raise ConflictError("Phone number already registered")

    email = (data.get('email') or '').strip().lower() or None
    if email and find_user_by_email(email, session=session):
        raise ConflictError("Email already registered")

    user = User(
        name=(data.get('name') or phone_no).strip(),
        phone_no=phone_no,
        email=email,
        role=role,
        created_by=data.get('created_by')
    )
    user.set_password(password)

    session.add(user)
    session.flush()

    logger.info("Registered user %s (phone=%s, role=%s)", user.id, phone_no, role)
    return user


def authenticate(phone_no, password, session=None):
    """Return the user when the password matches, else None."""
    user = find_user_by_phone(phone_no, session=session)
    if user and user.check_password(password):
        return user
    return None
