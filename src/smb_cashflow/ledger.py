# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ledger read interface.

The reconciliation engine does not know where ledger facts are stored. It
depends only on the narrow, read-only ``Ledger`` interface defined here:
one range-filtered sum/count (or listing) per fact type, plus the
point-in-time reads used by the balance snapshot.

Contract
--------
- Every method is scoped to one organization.
- Range reads take timezone-aware ``start``/``end`` datetimes; filtering is
  inclusive of both bounds.
- Reads never mutate anything and must be safe to call concurrently from
  several threads (the engine fans them out).
- ``snapshot()`` yields a ledger whose reads all observe the same state of
  the facts. The engine runs every public computation inside one
  snapshot, so the reads of a single call never mix data from before and
  after a concurrent import.
- Monetary values are returned as ``Decimal``.

Two implementations ship with the package:

- ``InMemoryLedger`` (this module): plain lists of entities, used by tests
  and for embedding the engine in another process.
- ``SqliteLedger`` (db.py): SQL aggregates over the application database.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .models import (
    ACTIVE_PAYABLE_STATUSES,
    AccountPayable,
    Customer,
    DocumentStatus,
    DocumentType,
    OperationalExpense,
    Organization,
    Payment,
    PaymentMethod,
    Product,
    ProductType,
    Project,
    ProjectExpense,
    ProjectPayment,
    ProjectResource,
    ProjectStatus,
    SalesDocument,
    TreasuryCategory,
    TreasuryMovement,
    TreasurySource,
    TreasuryType,
)
from .money import ZERO, sum_amounts

# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Aggregate:
    """Result of a sum/count query."""

    total: Decimal = ZERO
    count: int = 0


@dataclass(frozen=True)
class TreasuryFilter:
    """Optional filters applied to treasury-movement reads only."""

    category: Optional[TreasuryCategory] = None
    source: Optional[TreasurySource] = None

    def matches(self, movement: TreasuryMovement) -> bool:
        if self.category is not None and movement.category != self.category:
            return False
        if self.source is not None and movement.source != self.source:
            return False
        return True


NO_TREASURY_FILTER = TreasuryFilter()


@dataclass(frozen=True)
class SaleFact:
    """Monetary facts of one PAID sales document."""

    id: str
    payment_method: PaymentMethod
    subtotal: Decimal
    tax_amount: Decimal
    discount: Decimal
    total: Decimal
    card_commission_amount: Decimal


@dataclass(frozen=True)
class SaleCostLine:
    """One sold line with its cost snapshot (None when never costed)."""

    document_id: str
    quantity: Decimal
    unit_cost: Optional[Decimal]


@dataclass(frozen=True)
class ProductValuation:
    current_stock: Decimal
    cost: Decimal


@dataclass(frozen=True)
class ProjectReceivable:
    """Contracted amount of a non-cancelled project and its collections."""

    contracted_amount: Optional[Decimal]
    quote_total: Optional[Decimal]
    payments: tuple[Decimal, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Port
# ---------------------------------------------------------------------------


class Ledger(ABC):
    """Read-only access to the ledger facts of an organization."""

    @contextmanager
    def snapshot(self) -> Iterator["Ledger"]:
        """
        Yield a ledger whose reads share one consistent view of the facts.

        The default yields ``self``; implementations backed by a store that
        can change underneath the engine override it.
        """
        yield self

    @abstractmethod
    def organization_exists(self, organization_id: str) -> bool: ...

    @abstractmethod
    def paid_sales(
        self, organization_id: str, start: datetime, end: datetime
    ) -> list[SaleFact]:
        """PAID sales documents issued within [start, end]."""

    @abstractmethod
    def sale_cost_lines(
        self, organization_id: str, start: datetime, end: datetime
    ) -> list[SaleCostLine]:
        """Lines of PAID sales documents issued within [start, end]."""

    @abstractmethod
    def customer_payments(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate: ...

    @abstractmethod
    def project_payments(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate: ...

    @abstractmethod
    def treasury_movements(
        self,
        organization_id: str,
        start: datetime,
        end: datetime,
        movement_type: TreasuryType,
        treasury_filter: TreasuryFilter = NO_TREASURY_FILTER,
    ) -> Aggregate: ...

    @abstractmethod
    def operational_expenses(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate: ...

    @abstractmethod
    def project_expenses(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate: ...

    @abstractmethod
    def project_resources(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate: ...

    @abstractmethod
    def customer_receivables(self, organization_id: str) -> Aggregate:
        """Sum and count of customers whose current debt is positive."""

    @abstractmethod
    def active_payables(self, organization_id: str) -> Aggregate:
        """Payables with a positive balance and an open status."""

    @abstractmethod
    def valued_products(self, organization_id: str) -> list[ProductValuation]:
        """Active, stock-tracked products that have a known cost."""

    @abstractmethod
    def open_projects(self, organization_id: str) -> list[ProjectReceivable]:
        """Projects that are not cancelled."""


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


def _within(moment: datetime, start: datetime, end: datetime) -> bool:
    return start <= moment <= end


def _aggregate(amounts: Iterable[Decimal]) -> Aggregate:
    values = list(amounts)
    return Aggregate(total=sum_amounts(values), count=len(values))


class InMemoryLedger(Ledger):
    """
    Ledger backed by plain lists of entities.

    The ledger is populated at construction time and then
    only read. Reads build new lists and never mutate the stored entities,
    so concurrent reads are safe.
    """

    def __init__(
        self,
        organizations: Iterable[Organization] = (),
        *,
        sales_documents: Iterable[SalesDocument] = (),
        payments: Iterable[Payment] = (),
        project_payments: Iterable[ProjectPayment] = (),
        treasury_movements: Iterable[TreasuryMovement] = (),
        operational_expenses: Iterable[OperationalExpense] = (),
        project_expenses: Iterable[ProjectExpense] = (),
        project_resources: Iterable[ProjectResource] = (),
        accounts_payable: Iterable[AccountPayable] = (),
        customers: Iterable[Customer] = (),
        products: Iterable[Product] = (),
        projects: Iterable[Project] = (),
    ) -> None:
        self.organizations = {org.id: org for org in organizations}
        self.sales_documents = list(sales_documents)
        self.payments = list(payments)
        self.project_payment_records = list(project_payments)
        self.treasury_movement_records = list(treasury_movements)
        self.operational_expense_records = list(operational_expenses)
        self.project_expense_records = list(project_expenses)
        self.project_resource_records = list(project_resources)
        self.accounts_payable = list(accounts_payable)
        self.customers = list(customers)
        self.products = list(products)
        self.projects = list(projects)

    # -- Range reads ------------------------------------------------------

    def organization_exists(self, organization_id: str) -> bool:
        return organization_id in self.organizations

    def _paid_sales_documents(
        self, organization_id: str, start: datetime, end: datetime
    ) -> list[SalesDocument]:
        return [
            doc
            for doc in self.sales_documents
            if doc.organization_id == organization_id
            and doc.document_type == DocumentType.SALE
            and doc.status == DocumentStatus.PAID
            and _within(doc.issued_at, start, end)
        ]

    def paid_sales(
        self, organization_id: str, start: datetime, end: datetime
    ) -> list[SaleFact]:
        return [
            SaleFact(
                id=doc.id,
                payment_method=doc.payment_method,
                subtotal=doc.subtotal,
                tax_amount=doc.tax_amount,
                discount=doc.discount,
                total=doc.total,
                card_commission_amount=doc.card_commission_amount,
            )
            for doc in self._paid_sales_documents(organization_id, start, end)
        ]

    def sale_cost_lines(
        self, organization_id: str, start: datetime, end: datetime
    ) -> list[SaleCostLine]:
        return [
            SaleCostLine(
                document_id=doc.id,
                quantity=line.quantity,
                unit_cost=line.unit_cost,
            )
            for doc in self._paid_sales_documents(organization_id, start, end)
            for line in doc.lines
        ]

    def customer_payments(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate:
        return _aggregate(
            p.amount
            for p in self.payments
            if p.organization_id == organization_id and _within(p.paid_at, start, end)
        )

    def project_payments(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate:
        return _aggregate(
            p.amount
            for p in self.project_payment_records
            if p.organization_id == organization_id and _within(p.paid_at, start, end)
        )

    def treasury_movements(
        self,
        organization_id: str,
        start: datetime,
        end: datetime,
        movement_type: TreasuryType,
        treasury_filter: TreasuryFilter = NO_TREASURY_FILTER,
    ) -> Aggregate:
        return _aggregate(
            m.amount
            for m in self.treasury_movement_records
            if m.organization_id == organization_id
            and m.type == movement_type
            and treasury_filter.matches(m)
            and _within(m.occurred_at, start, end)
        )

    def operational_expenses(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate:
        return _aggregate(
            e.amount
            for e in self.operational_expense_records
            if e.organization_id == organization_id
            and _within(e.expense_date, start, end)
        )

    def project_expenses(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate:
        return _aggregate(
            e.amount
            for e in self.project_expense_records
            if e.organization_id == organization_id
            and _within(e.expense_date, start, end)
        )

    def project_resources(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate:
        return _aggregate(
            r.total_cost
            for r in self.project_resource_records
            if r.organization_id == organization_id
            and _within(r.created_at, start, end)
        )

    # -- Point-in-time reads ----------------------------------------------

    def customer_receivables(self, organization_id: str) -> Aggregate:
        return _aggregate(
            c.current_debt
            for c in self.customers
            if c.organization_id == organization_id and c.current_debt > ZERO
        )

    def active_payables(self, organization_id: str) -> Aggregate:
        return _aggregate(
            p.balance
            for p in self.accounts_payable
            if p.organization_id == organization_id
            and p.balance > ZERO
            and p.status in ACTIVE_PAYABLE_STATUSES
        )

    def valued_products(self, organization_id: str) -> list[ProductValuation]:
        return [
            ProductValuation(current_stock=p.current_stock, cost=p.cost)
            for p in self.products
            if p.organization_id == organization_id
            and p.type == ProductType.PRODUCT
            and p.is_active
            and p.track_inventory
            and p.cost is not None
        ]

    def open_projects(self, organization_id: str) -> list[ProjectReceivable]:
        payments_by_project: dict[str, list[Decimal]] = {}
        for payment in self.project_payment_records:
            if payment.organization_id == organization_id:
                payments_by_project.setdefault(payment.project_id, []).append(
                    payment.amount
                )

        return [
            ProjectReceivable(
                contracted_amount=project.contracted_amount,
                quote_total=project.quote_total,
                payments=tuple(payments_by_project.get(project.id, ())),
            )
            for project in self.projects
            if project.organization_id == organization_id
            and project.status != ProjectStatus.CANCELLED
        ]
