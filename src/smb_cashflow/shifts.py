# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cash register helpers: change due at the point of sale and shift close.

Both operations apply the legal cash rounding of ``CashRoundingPolicy``
per transaction. The expected cash of a shift is the opening float plus
the *sum of the individually rounded* cash sales, which is what the drawer
actually received. Rounding the aggregate instead gives a different figure
in general; ``reconcile_shift`` reports that gap so it can be spotted when
another report disagrees.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from .errors import InsufficientCashError
from .logging_config import get_logger
from .money import ZERO, AmountLike, CashRoundingPolicy, sum_amounts, to_decimal, to_int

logger = get_logger(__name__)

AGGREGATE_ROUNDING_WARNING = (
    "Rounding the total of cash sales instead of each sale would change the "
    "expected cash by {gap}."
)


@dataclass(frozen=True)
class ShiftReconciliation:
    """
    Result of a shift close.

    ``cash_sales_total`` is the sum of the per-sale rounded amounts;
    ``cash_sales_exact`` is the plain sum before any cash rounding.
    """

    opening_cash: Decimal
    cash_sales_count: int
    cash_sales_total: Decimal
    cash_sales_exact: Decimal
    expected_cash: Decimal
    actual_cash: Decimal
    difference: Decimal
    aggregate_rounding_gap: Decimal
    warnings: tuple[str, ...] = ()

    @property
    def balanced(self) -> bool:
        return self.difference == ZERO

    def as_dict(self) -> dict:
        return {
            "opening_cash": to_int(self.opening_cash),
            "cash_sales_count": self.cash_sales_count,
            "cash_sales_total": to_int(self.cash_sales_total),
            "cash_sales_exact": str(self.cash_sales_exact),
            "expected_cash": to_int(self.expected_cash),
            "actual_cash": to_int(self.actual_cash),
            "difference": to_int(self.difference),
            "aggregate_rounding_gap": to_int(self.aggregate_rounding_gap),
            "warnings": list(self.warnings),
        }


def check_cash_received(
    total: AmountLike,
    cash_received: AmountLike,
    policy: CashRoundingPolicy = CashRoundingPolicy(),
) -> Decimal:
    """
    Return the change due for a cash sale.

    The amount due is ``policy.round_single_cash_amount(total)``.

    Raises:
        InsufficientCashError: if ``cash_received`` is below the amount due.
    """
    amount_due = policy.round_single_cash_amount(total)
    received = to_decimal(cash_received)
    if received < amount_due:
        raise InsufficientCashError(
            f"Cash received {received} is below the amount due {amount_due}."
        )
    return received - amount_due


def reconcile_shift(
    opening_cash: AmountLike,
    cash_sale_totals: Iterable[AmountLike],
    actual_cash: AmountLike,
    policy: CashRoundingPolicy = CashRoundingPolicy(),
) -> ShiftReconciliation:
    """
    Compare the cash counted at the end of a shift with the expected cash.

    Args:
        opening_cash: Float in the drawer when the shift opened.
        cash_sale_totals: Totals of the CASH sales of the shift, unrounded.
        actual_cash: Cash counted when closing.
        policy: Cash rounding rule.

    Returns:
        A ShiftReconciliation where
        ``expected_cash = opening_cash + sum of per-sale rounded totals`` and
        ``difference = actual_cash - expected_cash``.
    """
    totals = [to_decimal(t) for t in cash_sale_totals]
    opening = to_decimal(opening_cash)
    actual = to_decimal(actual_cash)

    per_sale = policy.sum_of_rounded_cash_amounts(totals)
    aggregate = policy.round_aggregate_cash_amount(totals)
    gap = per_sale - aggregate

    expected = opening + per_sale
    warnings: tuple[str, ...] = ()
    if gap != ZERO:
        warnings = (AGGREGATE_ROUNDING_WARNING.format(gap=gap),)

    result = ShiftReconciliation(
        opening_cash=opening,
        cash_sales_count=len(totals),
        cash_sales_total=per_sale,
        cash_sales_exact=sum_amounts(totals),
        expected_cash=expected,
        actual_cash=actual,
        difference=actual - expected,
        aggregate_rounding_gap=gap,
        warnings=warnings,
    )
    logger.debug(
        "shift_reconciled",
        cash_sales_count=result.cash_sales_count,
        expected_cash=str(result.expected_cash),
        difference=str(result.difference),
    )
    return result
