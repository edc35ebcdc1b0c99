"""
Module: placement_kernel.db.types
Responsibility: Column types and utility functions for money and percentage
    values.  Centralizes precision and rounding so that every model and
    service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for compensation, fee percentages, or revenue.  All amounts
      are Decimal; round_money() is the ONLY sanctioned rounding function.

Failure modes:
    - decimal.InvalidOperation on a non-numeric string passed to to_decimal().
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import Numeric


def money_column_type() -> Numeric:
    """Compensation and revenue amounts."""
    return Numeric(38, 9)


def percentage_column_type() -> Numeric:
    """Fee percentage (e.g. 8.33 for 8.33%)."""
    return Numeric(9, 4)


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: Any) -> Decimal:
    """
    Convert an int, str or Decimal to Decimal.

    Floats go through str() so 8.33 becomes Decimal("8.33") rather than its
    binary expansion.

    Raises:
        decimal.InvalidOperation: If value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to specified decimal places.

    This is the ONLY sanctioned rounding function for money in the kernel.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)
