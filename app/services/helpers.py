"""Date and money helpers shared by the committee services."""

import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from app.exceptions import ValidationError

TWO_PLACES = Decimal('0.01')

# Draws (and committee end dates) are pinned to 19:00
DRAW_HOUR = 19


def to_money(value):
    """Convert to Decimal rounded to 2 decimal places."""
    if value is None:
        return Decimal('0.00')
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value}")
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def parse_datetime(value, field):
    """Accept datetime, date or ISO string; None stays None."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date")


def add_months(value, months):
    """
    Shift a datetime by whole calendar months.
    Days past the end of the target month clamp to its last day.
    """
    month = value.month - 1 + months
    year = value.year + month // 12
    month = month % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def at_draw_hour(value):
    return value.replace(hour=DRAW_HOUR, minute=0, second=0, microsecond=0)


def date_only(value):
    return value.date() if isinstance(value, datetime) else value


def require_id(payload, field):
    value = payload.get(field)
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
