# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ledger facts consumed by the reconciliation engine.

These dataclasses describe the records owned by the surrounding CRUD
subsystems (sales, credit, projects, treasury, expenses, payables,
inventory). The engine never creates or mutates them: it only reads
snapshots through a ``Ledger`` implementation (see ledger.py and db.py).

All monetary fields are ``Decimal``. All timestamps are timezone-aware
``datetime`` objects; month filtering is done against boundaries computed
in the business timezone (see periods.py).
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    TRANSFER = "TRANSFER"
    CREDIT = "CREDIT"
    MULTI = "MULTI"
    OTHER = "OTHER"


class DocumentType(str, Enum):
    SALE = "SALE"
    QUOTE = "QUOTE"


class DocumentStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class TreasuryType(str, Enum):
    INFLOW = "INFLOW"
    OUTFLOW = "OUTFLOW"


class TreasuryCategory(str, Enum):
    CAPITAL_INJECTION = "CAPITAL_INJECTION"
    OWNER_WITHDRAWAL = "OWNER_WITHDRAWAL"
    LOAN_IN = "LOAN_IN"
    LOAN_OUT = "LOAN_OUT"
    ACCOUNT_PAYABLE_PAYMENT = "ACCOUNT_PAYABLE_PAYMENT"
    OTHER = "OTHER"


class TreasurySource(str, Enum):
    CASH = "CASH"
    BANK = "BANK"
    TRANSFER = "TRANSFER"
    OTHER = "OTHER"


class PayableStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    OVERDUE = "OVERDUE"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


ACTIVE_PAYABLE_STATUSES = frozenset(
    {PayableStatus.PENDING, PayableStatus.PARTIAL, PayableStatus.OVERDUE}
)


class ProjectStatus(str, Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ProductType(str, Enum):
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Organization:
    id: str
    name: str


@dataclass(frozen=True)
class DocumentLineItem:
    """
    One sold line of a sales document.

    ``unit_cost`` is the cost snapshot of the linked product. It may be
    None when the product was never costed; such lines are excluded from
    cost-of-sales math and reported through the cost coverage metric.
    """

    quantity: Decimal
    unit_cost: Optional[Decimal] = None
    product_id: Optional[str] = None


@dataclass(frozen=True)
class SalesDocument:
    """
    Sales document as persisted by the sales subsystem.

    ``total = subtotal + tax_amount - discount`` holds at creation time
    (see document_totals.py); the engine trusts it and never re-derives it.
    """

    id: str
    organization_id: str
    payment_method: PaymentMethod
    status: DocumentStatus
    subtotal: Decimal
    tax_amount: Decimal
    discount: Decimal
    total: Decimal
    issued_at: datetime
    card_commission_amount: Decimal = Decimal("0")
    document_type: DocumentType = DocumentType.SALE
    lines: tuple[DocumentLineItem, ...] = ()


@dataclass(frozen=True)
class Payment:
    """Credit collection against a customer's debt."""

    id: str
    organization_id: str
    amount: Decimal
    paid_at: datetime
    customer_id: Optional[str] = None


@dataclass(frozen=True)
class ProjectPayment:
    """Collection against a project's contracted amount."""

    id: str
    organization_id: str
    project_id: str
    amount: Decimal
    paid_at: datetime


@dataclass(frozen=True)
class TreasuryMovement:
    id: str
    organization_id: str
    type: TreasuryType
    amount: Decimal
    occurred_at: datetime
    category: TreasuryCategory = TreasuryCategory.OTHER
    source: TreasurySource = TreasurySource.OTHER


@dataclass(frozen=True)
class OperationalExpense:
    id: str
    organization_id: str
    amount: Decimal
    expense_date: datetime


@dataclass(frozen=True)
class ProjectExpense:
    id: str
    organization_id: str
    project_id: str
    amount: Decimal
    expense_date: datetime


@dataclass(frozen=True)
class ProjectResource:
    """A cost line directly attributable to a project."""

    id: str
    organization_id: str
    project_id: str
    total_cost: Decimal
    created_at: datetime


@dataclass(frozen=True)
class AccountPayable:
    id: str
    organization_id: str
    balance: Decimal
    status: PayableStatus = PayableStatus.PENDING


@dataclass(frozen=True)
class Customer:
    id: str
    organization_id: str
    current_debt: Decimal = Decimal("0")


@dataclass(frozen=True)
class Product:
    id: str
    organization_id: str
    current_stock: Decimal = Decimal("0")
    cost: Optional[Decimal] = None
    type: ProductType = ProductType.PRODUCT
    is_active: bool = True
    track_inventory: bool = True


@dataclass(frozen=True)
class Project:
    """
    Project with its contracted amount.

    When ``contracted_amount`` is None, the total of the originating quote
    (``quote_total``) is used instead. Collections are the ``ProjectPayment``
    records that reference the project.
    """

    id: str
    organization_id: str
    status: ProjectStatus = ProjectStatus.IN_PROGRESS
    contracted_amount: Optional[Decimal] = None
    quote_total: Optional[Decimal] = None
