# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Document totals calculator.

This module computes the monetary facts of a sales document at creation
time: per-line and per-document subtotal, tax, discount and total. Its
output is persisted by the sales subsystem and later consumed, as-is, by
the reconciliation engine.

Rules
-----
1. Line gross amount:
       gross = quantity * unit_price - line_discount
   Negative gross amounts are clamped to 0.

2. Global discount:
   - must satisfy 0 <= discount <= sum(gross); otherwise an
     ``InvalidDiscountError`` is raised (never clamped),
   - is allocated across lines proportionally to their gross amount; every
     line receives its share truncated to the minor unit, except the last
     line with a positive gross amount, which receives the residual so that
     allocations sum exactly to the discount. Truncation keeps every share,
     the residual included, non-negative.

3. Tax depends on how prices were entered:
   - tax-exclusive prices (default): tax is computed on the line net amount
     (gross minus allocated discount) at the line tax rate (percent),
     quantized to the minor unit, and added on top of it. 1 x 10000 at 19%
     gives a total of 11900.
   - tax-inclusive prices (``prices_include_tax=True``, the point-of-sale
     convention where the shelf price already contains VAT): the line net
     amount is the total; it is split into a pre-tax subtotal
     ``net / (1 + rate / 100)``, quantized to the minor unit, and the tax
     is the remainder. 1 x 11900 at 19% gives subtotal 10000, tax 1900 and
     a total of 11900.

4. Document figures are plain sums of the line figures, so that:
   - with tax-exclusive prices, ``total = subtotal + tax_amount - discount``
     where ``subtotal`` is the gross amount before the global discount,
   - with tax-inclusive prices, ``total = subtotal + tax_amount`` where
     ``subtotal`` is the pre-tax amount after the global discount.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .errors import InvalidDiscountError
from .models import (
    DocumentLineItem,
    DocumentStatus,
    DocumentType,
    PaymentMethod,
    SalesDocument,
)
from .money import (
    HUNDRED,
    ZERO,
    AmountLike,
    quantize_minor,
    sum_amounts,
    to_decimal,
    truncate_minor,
)


@dataclass(frozen=True)
class LineInput:
    """One line as entered at the point of sale."""

    quantity: Decimal
    unit_price: Decimal
    discount: Decimal = ZERO
    tax_rate: Decimal = ZERO
    unit_cost: Optional[Decimal] = None
    product_id: Optional[str] = None


@dataclass(frozen=True)
class LineTotals:
    """
    Computed figures for one line.

    With tax-exclusive prices ``total = subtotal - discount_allocated +
    tax_amount``; with tax-inclusive prices ``total = subtotal + tax_amount``.
    """

    subtotal: Decimal
    discount_allocated: Decimal
    tax_amount: Decimal
    total: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    """Computed figures for a whole document."""

    lines: tuple[LineTotals, ...]
    subtotal: Decimal
    tax_amount: Decimal
    discount: Decimal
    total: Decimal

    def to_sales_document(
        self,
        *,
        document_id: str,
        organization_id: str,
        payment_method: PaymentMethod,
        issued_at: datetime,
        items: Sequence[LineInput] = (),
        card_commission_amount: AmountLike = ZERO,
        status: DocumentStatus = DocumentStatus.PAID,
    ) -> SalesDocument:
        """
        Build the persisted ``SalesDocument`` fact for these totals.

        ``items`` are the inputs the totals were computed from; they carry
        the cost snapshots used for cost of sales.
        """
        return SalesDocument(
            id=document_id,
            organization_id=organization_id,
            payment_method=payment_method,
            status=status,
            subtotal=self.subtotal,
            tax_amount=self.tax_amount,
            discount=self.discount,
            total=self.total,
            issued_at=issued_at,
            card_commission_amount=to_decimal(card_commission_amount),
            document_type=DocumentType.SALE,
            lines=tuple(
                DocumentLineItem(
                    quantity=to_decimal(item.quantity),
                    unit_cost=item.unit_cost,
                    product_id=item.product_id,
                )
                for item in items
            ),
        )


def _line_gross(item: LineInput) -> Decimal:
    gross = to_decimal(item.quantity) * to_decimal(item.unit_price) - to_decimal(
        item.discount
    )
    return gross if gross > ZERO else ZERO


def calculate_document_totals(
    items: Sequence[LineInput],
    global_discount: AmountLike = ZERO,
    *,
    prices_include_tax: bool = False,
) -> DocumentTotals:
    """
    Compute line and document totals.

    Args:
        items: Lines of the document.
        global_discount: Discount applied to the whole document.
        prices_include_tax: Whether unit prices already contain the line tax.

    Returns:
        A DocumentTotals instance whose line figures sum exactly to the
        document figures.

    Raises:
        InvalidDiscountError: if the global discount is negative or exceeds
            the sum of the gross line amounts.
    """
    discount = to_decimal(global_discount)
    gross_by_line = [_line_gross(item) for item in items]
    gross_total = sum_amounts(gross_by_line)

    if discount < ZERO:
        raise InvalidDiscountError(f"Global discount cannot be negative: {discount}")
    if discount > gross_total:
        raise InvalidDiscountError(
            f"Global discount {discount} exceeds the gross amount of the lines "
            f"({gross_total})."
        )

    lines: list[LineTotals] = []
    allocated_so_far = ZERO
    # The residual goes to the last line that can absorb it.
    last_index = max(
        (i for i, gross in enumerate(gross_by_line) if gross > ZERO), default=-1
    )

    for index, (item, gross) in enumerate(zip(items, gross_by_line)):
        allocated = ZERO
        if discount > ZERO and gross > ZERO:
            if index == last_index:
                allocated = discount - allocated_so_far
            else:
                allocated = truncate_minor(gross / gross_total * discount)
            allocated_so_far += allocated

        net = gross - allocated
        rate = to_decimal(item.tax_rate)
        if prices_include_tax:
            divisor = 1 + rate / HUNDRED
            subtotal = quantize_minor(net / divisor) if divisor > ZERO else net
            lines.append(
                LineTotals(
                    subtotal=subtotal,
                    discount_allocated=allocated,
                    tax_amount=net - subtotal,
                    total=net,
                )
            )
        else:
            tax = quantize_minor(net * rate / HUNDRED)
            lines.append(
                LineTotals(
                    subtotal=gross,
                    discount_allocated=allocated,
                    tax_amount=tax,
                    total=net + tax,
                )
            )

    return DocumentTotals(
        lines=tuple(lines),
        subtotal=sum_amounts(line.subtotal for line in lines),
        tax_amount=sum_amounts(line.tax_amount for line in lines),
        discount=discount,
        total=sum_amounts(line.total for line in lines),
    )
