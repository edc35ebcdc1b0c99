"""
Input validation for lifecycle events.

Every function either returns a normalised value or raises a
``ValidationError`` subclass carrying the offending field; nothing here
touches the database.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from placement_kernel.db.types import to_decimal
from placement_kernel.exceptions import (
    InvalidJoinDateError,
    InvalidOfferTermsError,
    MissingJoinDateError,
    MissingRenegeReasonError,
)


def parse_date(value: Any) -> date | None:
    """
    Coerce a date, datetime or ISO ``YYYY-MM-DD`` string to a date.

    Returns None for None/empty input.

    Raises:
        ValueError: If the value is not a real calendar date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def validate_join_date(candidate_id: Any, value: Any, today: date) -> date:
    """
    Validate the actual joining date for a joined transition.

    The date must be supplied, parse as a real calendar date, and not lie
    after ``today``.
    """
    if value is None or value == "":
        raise MissingJoinDateError(str(candidate_id))
    try:
        joined = parse_date(value)
    except (TypeError, ValueError):
        raise InvalidJoinDateError(str(value), "not a valid calendar date") from None
    if joined > today:
        raise InvalidJoinDateError(
            joined.isoformat(), f"joining date is after today ({today.isoformat()})"
        )
    return joined


def validate_money(field: str, value: Any, *, required: bool = True) -> Decimal | None:
    """Parse a non-negative monetary amount."""
    if value is None or value == "":
        if required:
            raise InvalidOfferTermsError(field, "is required")
        return None
    if isinstance(value, bool):
        raise InvalidOfferTermsError(field, "must be numeric")
    try:
        amount = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidOfferTermsError(field, "must be numeric") from None
    if not amount.is_finite():
        raise InvalidOfferTermsError(field, "must be a finite number")
    if amount < 0:
        raise InvalidOfferTermsError(field, "must not be negative")
    return amount


def validate_percentage(field: str, value: Any) -> Decimal:
    pct = validate_money(field, value)
    if pct > Decimal("100"):
        raise InvalidOfferTermsError(field, "must not exceed 100")
    return pct


def validate_offer_date(field: str, value: Any, *, required: bool = False) -> date | None:
    if value is None or value == "":
        if required:
            raise InvalidOfferTermsError(field, "is required")
        return None
    try:
        return parse_date(value)
    except (TypeError, ValueError):
        raise InvalidOfferTermsError(field, "not a valid calendar date") from None


def validate_renege_reason(candidate_id: Any, reason: str | None) -> str:
    if reason is None or not str(reason).strip():
        raise MissingRenegeReasonError(str(candidate_id))
    return str(reason).strip()
