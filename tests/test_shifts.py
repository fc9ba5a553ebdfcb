from decimal import Decimal

import pytest

from smb_cashflow.errors import InsufficientCashError
from smb_cashflow.money import CashRoundingPolicy
from smb_cashflow.shifts import check_cash_received, reconcile_shift

D = Decimal


def test_change_is_computed_on_the_rounded_total() -> None:
    """1,234 is charged 1,230 in cash; paying 2,000 gives 770 back."""
    assert check_cash_received("1234", "2000") == D("770")
    assert check_cash_received("1236", "1240") == D("0")


def test_insufficient_cash_is_rejected() -> None:
    with pytest.raises(InsufficientCashError) as excinfo:
        check_cash_received("1236", "1235")
    assert excinfo.value.code == "INSUFFICIENT_CASH"


def test_exact_rounded_amount_is_enough() -> None:
    """1,235 rounds down to 1,230, which is accepted."""
    assert check_cash_received("1235", "1230") == D("0")


def test_shift_uses_per_sale_rounding() -> None:
    """Totals 1, 2, 2, 4 with unit 5: expected 100 + 5, not 100 + 10."""
    result = reconcile_shift(100, [1, 2, 2, 4], 105, CashRoundingPolicy(5))

    assert result.cash_sales_count == 4
    assert result.cash_sales_total == D("5")
    assert result.cash_sales_exact == D("9")
    assert result.expected_cash == D("105")
    assert result.difference == D("0")
    assert result.balanced
    assert result.aggregate_rounding_gap == D("-5")
    assert len(result.warnings) == 1


def test_shift_difference_and_no_warning_when_roundings_agree() -> None:
    result = reconcile_shift("20000", ["3990", "7995", "4000"], "35980")

    # 3990 + 7990 + 4000
    assert result.cash_sales_total == D("15980")
    assert result.expected_cash == D("35980")
    assert result.difference == D("0")
    assert result.aggregate_rounding_gap == D("0")
    assert result.warnings == ()


def test_shift_shortfall_is_negative() -> None:
    result = reconcile_shift("10000", ["5000"], "14900")

    assert result.difference == D("-100")
    assert not result.balanced
    assert result.as_dict()["difference"] == -100


def test_empty_shift() -> None:
    result = reconcile_shift("10000", [], "10000")

    assert result.cash_sales_count == 0
    assert result.expected_cash == D("10000")
    assert result.balanced
