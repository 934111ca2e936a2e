"""
CENTRALIZED AUTHORIZATION SERVICE
==================================

All permission checks live here.
Routes and other services call these functions.

The caller is an already-authenticated principal: any object
with `id` and `role`. Nothing here re-authenticates it.
"""

from app.exceptions import CommitteeError, NotFoundError
from app.models import UserRole


class AuthorizationError(CommitteeError):
    """Raised when authorization fails"""
    status_code = 403


ADMIN_ONLY_ERROR = "You are not authorized to perform this action"
ADMIN_ONLY_DESCRIPTION = "Only committee admins can execute this operation"


def _role_value(user):
    return getattr(user.role, 'value', user.role)


# ============================================================
# ROLE CHECKS
# ============================================================

def is_admin(user):
    """Check if caller holds the ADMIN role"""
    return user is not None and _role_value(user) == UserRole.ADMIN.value


def require_admin(user):
    if not is_admin(user):
        raise AuthorizationError(ADMIN_ONLY_ERROR, ADMIN_ONLY_DESCRIPTION)


# ============================================================
# COMMITTEE OWNERSHIP CHECKS
# ============================================================

def is_committee_owner(user, committee):
    """Check if caller created (and therefore administers) the committee"""
    return committee is not None and committee.is_owned_by(user.id)


def require_owner(user, committee, message="You are not authorized to update this committee"):
    """Owner-only gate that admits the committee exists."""
    if not is_committee_owner(user, committee):
        raise AuthorizationError(message)


def require_owner_or_not_found(user, committee):
    """Owner-only gate that does NOT confirm existence to non-owners."""
    if not is_committee_owner(user, committee):
        raise NotFoundError("Committee not found")
