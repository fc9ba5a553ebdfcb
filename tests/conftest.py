"""
Shared ledger fixture.

One organization ("acme") with activity in February, March and April 2026
(America/Santiago), plus a second organization whose facts must never leak
into acme's figures. Expected March 2026 figures:

    sales_total            95,200   (11,900 cash + 23,800 card + 59,500 credit)
    sales_net              80,000
    credit_sales_total     59,500
    cost_of_sales_total    34,000   (one card line has no cost snapshot)
    card commissions          700
    gross_profit           45,300
    collections            10,000
    project collections 2,000,000
    treasury in / out   1,000,000 / 200,000 (both on a month boundary)
    operational expenses  300,000
    project outflows      150,000   (100,000 expenses + 50,000 resources)
    cash_inflows        3,045,700
    cash_outflows         650,000
    net_cash_flow       2,395,700
    operating_result    1,595,300
"""

from datetime import UTC, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from smb_cashflow.models import (
    AccountPayable,
    Customer,
    DocumentLineItem,
    DocumentStatus,
    DocumentType,
    OperationalExpense,
    Organization,
    PayableStatus,
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

SANTIAGO = ZoneInfo("America/Santiago")
D = Decimal


def local(year, month, day, hour=12, minute=0, second=0, microsecond=0) -> datetime:
    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=SANTIAGO)


def fixed_clock():
    """Clock frozen on April 15th 2026 (current month: 2026-04)."""
    return datetime(2026, 4, 15, 15, 0, tzinfo=UTC)


def make_sale(
    doc_id,
    method,
    subtotal,
    tax,
    issued_at,
    *,
    org="acme",
    commission="0",
    status=DocumentStatus.PAID,
    document_type=DocumentType.SALE,
    lines=(),
) -> SalesDocument:
    return SalesDocument(
        id=doc_id,
        organization_id=org,
        payment_method=method,
        status=status,
        subtotal=D(subtotal),
        tax_amount=D(tax),
        discount=D("0"),
        total=D(subtotal) + D(tax),
        issued_at=issued_at,
        card_commission_amount=D(commission),
        document_type=document_type,
        lines=tuple(lines),
    )


@pytest.fixture
def ledger_facts() -> dict:
    """Keyword arguments for ``InMemoryLedger`` / ``write_ledger_facts``."""
    return {
        "organizations": [
            Organization(id="acme", name="Acme Ltda"),
            Organization(id="other", name="Other SpA"),
        ],
        "sales_documents": [
            make_sale(
                "s1",
                PaymentMethod.CASH,
                "10000",
                "1900",
                local(2026, 3, 2),
                lines=[DocumentLineItem(quantity=D("2"), unit_cost=D("3000"), product_id="prod1")],
            ),
            make_sale(
                "s2",
                PaymentMethod.CARD,
                "20000",
                "3800",
                local(2026, 3, 8),
                commission="700",
                lines=[
                    DocumentLineItem(quantity=D("1"), unit_cost=D("8000"), product_id="prod2"),
                    DocumentLineItem(quantity=D("1"), unit_cost=None),
                ],
            ),
            make_sale(
                "s3",
                PaymentMethod.CREDIT,
                "50000",
                "9500",
                local(2026, 3, 20),
                lines=[DocumentLineItem(quantity=D("5"), unit_cost=D("4000"))],
            ),
            # Not PAID, a quote, another organization: all excluded.
            make_sale(
                "s4",
                PaymentMethod.CASH,
                "99999",
                "0",
                local(2026, 3, 21),
                status=DocumentStatus.PENDING,
            ),
            make_sale(
                "q1",
                PaymentMethod.CASH,
                "77777",
                "0",
                local(2026, 3, 22),
                document_type=DocumentType.QUOTE,
            ),
            make_sale(
                "x1",
                PaymentMethod.CASH,
                "55555",
                "0",
                local(2026, 3, 23),
                org="other",
            ),
            make_sale("s5", PaymentMethod.CASH, "5000", "950", local(2026, 4, 2)),
        ],
        "payments": [
            Payment(id="p0", organization_id="acme", amount=D("10000"), paid_at=local(2026, 3, 5)),
            # Collection of the March credit sale s3.
            Payment(id="p1", organization_id="acme", amount=D("59500"), paid_at=local(2026, 4, 5)),
        ],
        "project_payments": [
            ProjectPayment(
                id="pp1",
                organization_id="acme",
                project_id="prj1",
                amount=D("2000000"),
                paid_at=local(2026, 3, 10),
            ),
            ProjectPayment(
                id="pp2",
                organization_id="acme",
                project_id="prj4",
                amount=D("100000"),
                paid_at=local(2026, 2, 10),
            ),
        ],
        "treasury_movements": [
            TreasuryMovement(
                id="t1",
                organization_id="acme",
                type=TreasuryType.INFLOW,
                amount=D("1000000"),
                occurred_at=local(2026, 3, 1, 0),
                category=TreasuryCategory.CAPITAL_INJECTION,
                source=TreasurySource.BANK,
            ),
            TreasuryMovement(
                id="t2",
                organization_id="acme",
                type=TreasuryType.OUTFLOW,
                amount=D("200000"),
                occurred_at=local(2026, 3, 31, 23, 59, 59, 999999),
                category=TreasuryCategory.OWNER_WITHDRAWAL,
                source=TreasurySource.CASH,
            ),
            TreasuryMovement(
                id="t3",
                organization_id="acme",
                type=TreasuryType.INFLOW,
                amount=D("500000"),
                occurred_at=local(2026, 4, 1, 0),
                category=TreasuryCategory.LOAN_IN,
                source=TreasurySource.BANK,
            ),
        ],
        "operational_expenses": [
            OperationalExpense(
                id="e1", organization_id="acme", amount=D("300000"), expense_date=local(2026, 3, 15)
            ),
        ],
        "project_expenses": [
            ProjectExpense(
                id="pe1",
                organization_id="acme",
                project_id="prj1",
                amount=D("100000"),
                expense_date=local(2026, 3, 16),
            ),
        ],
        "project_resources": [
            ProjectResource(
                id="pr1",
                organization_id="acme",
                project_id="prj1",
                total_cost=D("50000"),
                created_at=local(2026, 3, 17),
            ),
        ],
        "accounts_payable": [
            AccountPayable(id="ap1", organization_id="acme", balance=D("400000")),
            AccountPayable(
                id="ap2", organization_id="acme", balance=D("100000"), status=PayableStatus.PARTIAL
            ),
            AccountPayable(
                id="ap3", organization_id="acme", balance=D("50000"), status=PayableStatus.PAID
            ),
            AccountPayable(
                id="ap4", organization_id="acme", balance=D("0"), status=PayableStatus.OVERDUE
            ),
            AccountPayable(
                id="ap5", organization_id="acme", balance=D("70000"), status=PayableStatus.CANCELLED
            ),
        ],
        "customers": [
            Customer(id="c1", organization_id="acme", current_debt=D("120000")),
            Customer(id="c2", organization_id="acme", current_debt=D("0")),
            Customer(id="c3", organization_id="acme", current_debt=D("-5000")),
        ],
        "products": [
            Product(id="prod1", organization_id="acme", current_stock=D("10"), cost=D("3000")),
            Product(id="prod2", organization_id="acme", current_stock=D("2.5"), cost=D("8000")),
            Product(
                id="prod3",
                organization_id="acme",
                current_stock=D("5"),
                cost=D("1000"),
                type=ProductType.SERVICE,
            ),
            Product(
                id="prod4",
                organization_id="acme",
                current_stock=D("5"),
                cost=D("1000"),
                is_active=False,
            ),
            Product(id="prod5", organization_id="acme", current_stock=D("5"), cost=None),
            Product(
                id="prod6",
                organization_id="acme",
                current_stock=D("5"),
                cost=D("1000"),
                track_inventory=False,
            ),
        ],
        "projects": [
            Project(id="prj1", organization_id="acme", contracted_amount=D("5000000")),
            Project(id="prj2", organization_id="acme", quote_total=D("800000")),
            Project(
                id="prj3",
                organization_id="acme",
                status=ProjectStatus.CANCELLED,
                contracted_amount=D("1000000"),
            ),
            Project(
                id="prj4",
                organization_id="acme",
                status=ProjectStatus.COMPLETED,
                contracted_amount=D("100000"),
            ),
        ],
    }


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture
def ledger(ledger_facts):
    from smb_cashflow.ledger import InMemoryLedger

    return InMemoryLedger(**ledger_facts)


@pytest.fixture
def engine(ledger):
    from smb_cashflow.engine import ReconciliationEngine

    return ReconciliationEngine(ledger, clock=fixed_clock)
