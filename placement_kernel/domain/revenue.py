"""
Revenue Calculator -- placement fee recognition.

Pure, deterministic functions:

    recognized_revenue   = fixed_ctc * fee_percentage / 100
    billable_ctc         = fixed_ctc
    offered_ctc          = fixed_ctc + variable_ctc

Variable/bonus pay never enters billing.  The accounting period is the
month of the *joining date*, not of the day the join was recorded.

No error conditions: callers validate inputs (non-null, non-negative)
before calling.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from placement_kernel.db.types import MONEY_DECIMAL_PLACES, round_money, to_decimal

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CompensationBreakdown:
    """Offered vs billable compensation for one set of offer terms."""

    fixed_ctc: Decimal
    variable_ctc: Decimal
    offered_ctc: Decimal
    billable_ctc: Decimal


@dataclass(frozen=True)
class RevenueRecognition:
    """Result of recognising revenue for a placement."""

    billable_ctc: Decimal
    fee_percentage: Decimal
    recognized_revenue: Decimal
    month: int
    year: int

    @property
    def revenue_month(self) -> str:
        """Accounting period key, ``YYYY-MM``."""
        return f"{self.year:04d}-{self.month:02d}"


def compensation_breakdown(
    fixed_ctc: Any,
    variable_ctc: Any = None,
) -> CompensationBreakdown:
    fixed = to_decimal(fixed_ctc)
    variable = to_decimal(variable_ctc) if variable_ctc is not None else Decimal("0")
    return CompensationBreakdown(
        fixed_ctc=fixed,
        variable_ctc=variable,
        offered_ctc=fixed + variable,
        billable_ctc=fixed,
    )


def recognized_revenue(
    fixed_ctc: Any,
    fee_percentage: Any,
    decimal_places: int = MONEY_DECIMAL_PLACES,
) -> Decimal:
    """Fee earned on ``fixed_ctc`` at ``fee_percentage`` percent."""
    amount = to_decimal(fixed_ctc) * to_decimal(fee_percentage) / _HUNDRED
    return round_money(amount, decimal_places)


def calculate_revenue(
    fixed_ctc: Any,
    fee_percentage: Any,
    joining_date: date,
    decimal_places: int = MONEY_DECIMAL_PLACES,
) -> RevenueRecognition:
    """
    Recognise revenue for a placement that joined on ``joining_date``.

    >>> calculate_revenue(1000000, "8.33", date(2024, 3, 15)).recognized_revenue
    Decimal('83300.00')
    """
    fixed = to_decimal(fixed_ctc)
    fee = to_decimal(fee_percentage)
    return RevenueRecognition(
        billable_ctc=fixed,
        fee_percentage=fee,
        recognized_revenue=recognized_revenue(fixed, fee, decimal_places),
        month=joining_date.month,
        year=joining_date.year,
    )
