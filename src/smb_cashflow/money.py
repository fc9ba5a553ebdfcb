# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Monetary helpers for SMB Cashflow.

All amounts handled by the package are ``decimal.Decimal`` values. Floats
never enter a computation: they are converted through ``str()`` at the
boundary so that ``0.1`` stays ``0.1``.

Rounding
--------
Figures are rounded with ``ROUND_HALF_UP``. The only exception is the
allocation of a global discount across document lines, whose shares are
truncated (``truncate_minor``) so that the residual never goes negative.

- ``round_amount`` rounds to whole currency units. It is applied once per
  derived figure, never on intermediate sums.
- ``round_percent`` produces a percentage rounded to one decimal.

Cash rounding
-------------
Some jurisdictions require physical-currency payments to be rounded to the
nearest legal denomination (Chile: nearest 10 pesos, with remainders up to
5 rounded down). ``CashRoundingPolicy`` implements that rule for an
arbitrary denomination and exposes two operations that must not be
confused:

- ``round_single_cash_amount(total)``: the amount due for one cash sale,
  used to compute change at the point of sale.
- ``sum_of_rounded_cash_amounts(totals)``: rounds each sale individually
  and then sums. This is the figure used to rebuild the expected cash of a
  shift. Rounding the aggregate instead (``round_aggregate_cash_amount``)
  gives a different number in general and is only exposed so that
  reconciliation can detect the gap.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

AmountLike = Union[Decimal, int, float, str, None]

ZERO = Decimal("0")
UNIT = Decimal("1")
MINOR_UNIT = Decimal("0.01")
PERCENT_STEP = Decimal("0.1")
HUNDRED = Decimal("100")


def to_decimal(value: AmountLike) -> Decimal:
    """
    Convert a raw monetary value to ``Decimal``.

    ``None`` is treated as zero (missing aggregate sums). Floats go through
    ``str()`` to avoid carrying binary noise into the computation.

    Raises:
        ValueError: if the value cannot be interpreted as a number.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid monetary value: {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid monetary value: {value!r}") from exc


def round_amount(value: AmountLike) -> Decimal:
    """Round a monetary value to whole currency units (ROUND_HALF_UP)."""
    return to_decimal(value).quantize(UNIT, rounding=ROUND_HALF_UP)


def quantize_minor(value: AmountLike) -> Decimal:
    """Round a monetary value to the minor unit (cents)."""
    return to_decimal(value).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def truncate_minor(value: AmountLike) -> Decimal:
    """Truncate a monetary value to the minor unit, towards zero."""
    return to_decimal(value).quantize(MINOR_UNIT, rounding=ROUND_DOWN)


def round_percent(numerator: AmountLike, denominator: AmountLike) -> Decimal:
    """
    Return ``numerator / denominator * 100`` rounded to one decimal.

    A non-positive denominator yields ``0.0``: margins are only meaningful
    on positive revenue.
    """
    den = to_decimal(denominator)
    if den <= ZERO:
        return Decimal("0.0")
    ratio = to_decimal(numerator) / den * HUNDRED
    return ratio.quantize(PERCENT_STEP, rounding=ROUND_HALF_UP)


def sum_amounts(values: Iterable[AmountLike]) -> Decimal:
    """Exact Decimal sum of monetary values."""
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def to_int(value: AmountLike) -> int:
    """Convert a rounded amount to ``int`` for output boundaries."""
    return int(round_amount(value))


def to_float(value: AmountLike) -> float:
    """Convert a percentage to ``float`` for output boundaries."""
    return float(to_decimal(value))


@dataclass(frozen=True)
class CashRoundingPolicy:
    """
    Rounding rule for cash settlement.

    Attributes
    ----------
    unit :
        Smallest legal denomination accepted in cash, in whole currency
        units (10 for Chilean pesos). A unit of 1 disables cash rounding.
    """

    unit: int = 10

    def __post_init__(self) -> None:
        if not isinstance(self.unit, int) or isinstance(self.unit, bool):
            raise ValueError(f"Cash rounding unit must be an integer: {self.unit!r}")
        if self.unit < 1:
            raise ValueError(f"Cash rounding unit must be positive: {self.unit!r}")

    def round_single_cash_amount(self, total: AmountLike) -> Decimal:
        """Round one cash total to the nearest legal denomination."""
        rounded = round_amount(total)
        unit = Decimal(self.unit)
        # Decimal % keeps the sign of the dividend.
        remainder = ((rounded % unit) + unit) % unit

        if remainder == ZERO:
            return rounded
        if remainder * 2 <= unit:
            return rounded - remainder
        return rounded + (unit - remainder)

    def sum_of_rounded_cash_amounts(self, totals: Iterable[AmountLike]) -> Decimal:
        """Round every cash total individually, then sum them."""
        return sum_amounts(self.round_single_cash_amount(t) for t in totals)

    def round_aggregate_cash_amount(self, totals: Iterable[AmountLike]) -> Decimal:
        """Sum cash totals first, then round once (not used for expected cash)."""
        return self.round_single_cash_amount(sum_amounts(totals))
