# This makes 'services' a Python package
"""
Services Package
================

Business logic layer for committees (chit funds).

All lifecycle, settlement and authorization operations are handled here.
Routes should call these services, not manipulate models directly.
"""

from app.exceptions import (
    CommitteeError,
    ValidationError,
    NotFoundError,
    ConflictError,
    InternalError
)

from app.services.authorization_service import (
    is_admin,
    is_committee_owner,
    require_admin,
    require_owner,
    AuthorizationError
)

from app.services.user_service import (
    find_user_by_phone,
    register_user,
    authenticate
)

from app.services.committee_service import (
    create_committee,
    list_committees,
    get_committee,
    get_committee_members,
    get_committee_analysis
)

from app.services.membership_service import (
    add_member,
    build_draw_schedule
)

from app.services.settlement_service import (
    calculate_fine_amount,
    calculate_due_amount,
    record_payment,
    get_user_wise_draw_paid_amount,
    update_draw_amount,
    list_draws
)

from app.services.draw_service import (
    complete_draw
)
