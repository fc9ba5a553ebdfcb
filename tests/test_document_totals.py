from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from smb_cashflow.document_totals import LineInput, calculate_document_totals
from smb_cashflow.errors import InvalidDiscountError
from smb_cashflow.models import DocumentStatus, PaymentMethod

D = Decimal


def test_single_line_with_tax() -> None:
    """2 x 5000 at 19% -> subtotal 10000, tax 1900, total 11900."""
    totals = calculate_document_totals(
        [LineInput(quantity=D("2"), unit_price=D("5000"), tax_rate=D("19"))]
    )

    assert totals.subtotal == D("10000")
    assert totals.tax_amount == D("1900.00")
    assert totals.discount == D("0")
    assert totals.total == D("11900.00")


def test_line_discount_and_negative_gross_is_clamped() -> None:
    totals = calculate_document_totals(
        [
            LineInput(quantity=D("1"), unit_price=D("1000"), discount=D("200")),
            LineInput(quantity=D("1"), unit_price=D("100"), discount=D("500")),
        ]
    )

    assert [line.subtotal for line in totals.lines] == [D("800"), D("0")]
    assert totals.subtotal == D("800")


def test_global_discount_residual_goes_to_last_positive_line() -> None:
    """100 split over three equal lines: 33.33 + 33.33 + 33.34."""
    items = [
        LineInput(quantity=D("1"), unit_price=D("1000")),
        LineInput(quantity=D("1"), unit_price=D("1000")),
        LineInput(quantity=D("1"), unit_price=D("1000")),
        LineInput(quantity=D("1"), unit_price=D("0")),
    ]
    totals = calculate_document_totals(items, global_discount=D("100"))

    allocations = [line.discount_allocated for line in totals.lines]
    assert allocations == [D("33.33"), D("33.33"), D("33.34"), D("0")]
    assert sum(allocations) == D("100")


def test_document_identity_holds() -> None:
    """total == subtotal + tax - discount, and line figures sum to the document."""
    items = [
        LineInput(quantity=D("3"), unit_price=D("1990"), tax_rate=D("19")),
        LineInput(quantity=D("1.5"), unit_price=D("2333"), tax_rate=D("19")),
        LineInput(quantity=D("1"), unit_price=D("777"), tax_rate=D("0")),
    ]
    totals = calculate_document_totals(items, global_discount=D("1000"))

    assert totals.total == totals.subtotal + totals.tax_amount - totals.discount
    assert sum(line.total for line in totals.lines) == totals.total
    assert sum(line.tax_amount for line in totals.lines) == totals.tax_amount


def test_discount_equal_to_gross_is_accepted() -> None:
    totals = calculate_document_totals(
        [LineInput(quantity=D("1"), unit_price=D("500"), tax_rate=D("19"))],
        global_discount=D("500"),
    )

    assert totals.total == D("0")
    assert totals.tax_amount == D("0")


@pytest.mark.parametrize("discount", [D("-1"), D("1000.01")])
def test_invalid_global_discount_is_rejected(discount) -> None:
    """Out-of-range discounts raise instead of being clamped."""
    with pytest.raises(InvalidDiscountError) as excinfo:
        calculate_document_totals(
            [LineInput(quantity=D("1"), unit_price=D("1000"))],
            global_discount=discount,
        )
    assert excinfo.value.code == "INVALID_DISCOUNT"


def test_empty_document_has_zero_totals() -> None:
    totals = calculate_document_totals([])

    assert totals.lines == ()
    assert totals.total == D("0")


def test_to_sales_document_keeps_totals_and_cost_snapshots() -> None:
    items = [
        LineInput(
            quantity=D("2"),
            unit_price=D("5000"),
            tax_rate=D("19"),
            unit_cost=D("3000"),
            product_id="p1",
        ),
        LineInput(quantity=D("1"), unit_price=D("1000")),
    ]
    totals = calculate_document_totals(items)
    issued_at = datetime(2026, 3, 10, 12, 0, tzinfo=ZoneInfo("America/Santiago"))

    doc = totals.to_sales_document(
        document_id="d1",
        organization_id="acme",
        payment_method=PaymentMethod.CARD,
        issued_at=issued_at,
        items=items,
        card_commission_amount="350",
    )

    assert doc.status == DocumentStatus.PAID
    assert doc.total == totals.total
    assert doc.subtotal == totals.subtotal
    assert doc.card_commission_amount == D("350")
    assert [line.unit_cost for line in doc.lines] == [D("3000"), None]
    assert doc.lines[0].product_id == "p1"


def test_discount_residual_is_never_negative() -> None:
    """0.02 over four lines of 1.00: the truncated shares leave the residual
    to the last line instead of pushing it below zero."""
    items = [LineInput(quantity=D("1"), unit_price=D("1.00")) for _ in range(4)]
    totals = calculate_document_totals(items, global_discount=D("0.02"))

    allocations = [line.discount_allocated for line in totals.lines]
    assert allocations == [D("0.00"), D("0.00"), D("0.00"), D("0.02")]
    assert all(line.total <= D("1.00") for line in totals.lines)
    assert totals.total == D("3.98")


def test_tax_inclusive_prices_split_the_price() -> None:
    """1 x 11900 at 19%, VAT included: subtotal 10000, tax 1900, total 11900."""
    totals = calculate_document_totals(
        [LineInput(quantity=D("1"), unit_price=D("11900"), tax_rate=D("19"))],
        prices_include_tax=True,
    )

    assert totals.subtotal == D("10000.00")
    assert totals.tax_amount == D("1900.00")
    assert totals.total == D("11900")


def test_tax_inclusive_prices_with_global_discount() -> None:
    items = [
        LineInput(quantity=D("1"), unit_price=D("11900"), tax_rate=D("19")),
        LineInput(quantity=D("1"), unit_price=D("11900"), tax_rate=D("19")),
    ]
    totals = calculate_document_totals(
        items, global_discount=D("1190"), prices_include_tax=True
    )

    assert [line.discount_allocated for line in totals.lines] == [D("595"), D("595")]
    assert [line.total for line in totals.lines] == [D("11305"), D("11305")]
    assert totals.subtotal == D("19000.00")
    assert totals.tax_amount == D("3610.00")
    assert totals.total == totals.subtotal + totals.tax_amount == D("22610")
