# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB Cashflow.

This module reads ledger facts exported by the surrounding business
application from a directory of CSV files, one file per fact type, and
turns them into the typed records of ``models.py``.

Expected files
--------------
Every file is optional; missing files are simply skipped. Column names are
case-insensitive. Columns marked with ``?`` are optional.

    sales_documents.csv       id, payment_method, status, subtotal,
                              tax_amount, discount?, total, issued_at,
                              card_commission_amount?, document_type?
    document_lines.csv        document_id, quantity, unit_cost?, product_id?
    payments.csv              id, amount, paid_at, customer_id?
    project_payments.csv      id, project_id, amount, paid_at
    treasury_movements.csv    id, type, amount, occurred_at, category?, source?
    operational_expenses.csv  id, amount, expense_date
    project_expenses.csv      id, project_id, amount, expense_date
    project_resources.csv     id, project_id, total_cost, created_at
    accounts_payable.csv      id, balance, status?
    customers.csv             id, current_debt?
    products.csv              id, current_stock?, cost?, type?, is_active?,
                              track_inventory?
    projects.csv              id, status?, contracted_amount?, quote_total?

Parsing rules
-------------
- Every cell is read as text and monetary values are converted to
  ``Decimal`` directly from that text (no float round-trip).
- Timestamps without an explicit offset are interpreted in the business
  timezone; timestamps with an offset are converted to it.
- An empty optional cell means "not set" (e.g. a product without cost).

Any structural problem (missing required column, invalid number, date or
enumeration value, line pointing to an unknown document) raises a
ValueError naming the file and the offending column.
"""

import os
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Optional, TypeVar, Union

import pandas as pd

from .models import (
    AccountPayable,
    Customer,
    DocumentLineItem,
    DocumentStatus,
    DocumentType,
    OperationalExpense,
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
from .money import ZERO, to_decimal
from .periods import DEFAULT_TIMEZONE, get_timezone

PathLike = Union[str, "os.PathLike[str]"]
E = TypeVar("E", bound=Enum)

LEDGER_FILES = (
    "sales_documents.csv",
    "document_lines.csv",
    "payments.csv",
    "project_payments.csv",
    "treasury_movements.csv",
    "operational_expenses.csv",
    "project_expenses.csv",
    "project_resources.csv",
    "accounts_payable.csv",
    "customers.csv",
    "products.csv",
    "projects.csv",
)

_TRUE_VALUES = {"1", "true", "yes", "y"}
_FALSE_VALUES = {"0", "false", "no", "n"}


@dataclass(frozen=True)
class LedgerFacts:
    """All ledger records read from an export directory."""

    sales_documents: tuple[SalesDocument, ...] = ()
    payments: tuple[Payment, ...] = ()
    project_payments: tuple[ProjectPayment, ...] = ()
    treasury_movements: tuple[TreasuryMovement, ...] = ()
    operational_expenses: tuple[OperationalExpense, ...] = ()
    project_expenses: tuple[ProjectExpense, ...] = ()
    project_resources: tuple[ProjectResource, ...] = ()
    accounts_payable: tuple[AccountPayable, ...] = ()
    customers: tuple[Customer, ...] = ()
    products: tuple[Product, ...] = ()
    projects: tuple[Project, ...] = ()

    def as_kwargs(self) -> dict[str, tuple]:
        """Keyword arguments accepted by ``InMemoryLedger`` and
        ``write_ledger_facts``."""
        return {
            "sales_documents": self.sales_documents,
            "payments": self.payments,
            "project_payments": self.project_payments,
            "treasury_movements": self.treasury_movements,
            "operational_expenses": self.operational_expenses,
            "project_expenses": self.project_expenses,
            "project_resources": self.project_resources,
            "accounts_payable": self.accounts_payable,
            "customers": self.customers,
            "products": self.products,
            "projects": self.projects,
        }

    @property
    def record_count(self) -> int:
        return sum(len(records) for records in self.as_kwargs().values())


# ---------------------------------------------------------------------------
# Cell parsers
# ---------------------------------------------------------------------------


def _read_table(
    path: Path, required: set[str], optional: set[str] = frozenset()
) -> list[dict[str, str]]:
    """
    Read a CSV file as text and return its rows as dictionaries.

    Missing optional columns are added as empty strings.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [c.lower().strip() for c in df.columns]

    missing = required.difference(df.columns)
    if missing:
        cols = ", ".join(sorted(missing))
        raise ValueError(f"{path.name} is missing required column(s): {cols}")

    for col in optional.difference(df.columns):
        df[col] = ""

    df = df[sorted(required | set(optional))]
    return [
        {key: str(value).strip() for key, value in row.items()}
        for row in df.to_dict(orient="records")
    ]


def _amount(row: dict[str, str], column: str, source: str) -> Decimal:
    raw = row[column]
    if raw == "":
        raise ValueError(f"{source}: missing value in '{column}' column.")
    try:
        return to_decimal(raw)
    except ValueError as exc:
        raise ValueError(f"{source}: invalid numeric value in '{column}' column.") from exc


def _optional_amount(row: dict[str, str], column: str, source: str) -> Optional[Decimal]:
    if row.get(column, "") == "":
        return None
    return _amount(row, column, source)


def _timestamp(row: dict[str, str], column: str, source: str, tz_name: str) -> datetime:
    raw = row[column]
    try:
        ts = pd.Timestamp(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{source}: invalid values in '{column}' column.") from exc
    if pd.isna(ts):
        raise ValueError(f"{source}: missing value in '{column}' column.")

    if ts.tzinfo is None:
        ts = ts.tz_localize(tz_name)
    else:
        ts = ts.tz_convert(tz_name)
    return ts.to_pydatetime()


def _enum(
    row: dict[str, str],
    column: str,
    enum_cls: type[E],
    source: str,
    default: Optional[E] = None,
) -> E:
    raw = row.get(column, "").upper()
    if raw == "":
        if default is None:
            raise ValueError(f"{source}: missing value in '{column}' column.")
        return default
    try:
        return enum_cls(raw)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(
            f"{source}: invalid value {raw!r} in '{column}' column "
            f"(expected one of: {allowed})."
        ) from exc


def _flag(row: dict[str, str], column: str, source: str, default: bool) -> bool:
    raw = row.get(column, "").lower()
    if raw == "":
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"{source}: invalid boolean {raw!r} in '{column}' column.")


def _text(row: dict[str, str], column: str) -> Optional[str]:
    value = row.get(column, "")
    return value or None


# ---------------------------------------------------------------------------
# Per-file readers
# ---------------------------------------------------------------------------


def _read_document_lines(path: Path) -> dict[str, list[DocumentLineItem]]:
    lines_by_document: dict[str, list[DocumentLineItem]] = defaultdict(list)
    rows = _read_table(path, {"document_id", "quantity"}, {"unit_cost", "product_id"})
    for row in rows:
        lines_by_document[row["document_id"]].append(
            DocumentLineItem(
                quantity=_amount(row, "quantity", path.name),
                unit_cost=_optional_amount(row, "unit_cost", path.name),
                product_id=_text(row, "product_id"),
            )
        )
    return lines_by_document


def _read_sales_documents(
    path: Path,
    organization_id: str,
    tz_name: str,
    lines_by_document: dict[str, list[DocumentLineItem]],
) -> list[SalesDocument]:
    rows = _read_table(
        path,
        {"id", "payment_method", "status", "subtotal", "tax_amount", "total", "issued_at"},
        {"discount", "card_commission_amount", "document_type"},
    )
    src = path.name
    return [
        SalesDocument(
            id=row["id"],
            organization_id=organization_id,
            payment_method=_enum(row, "payment_method", PaymentMethod, src),
            status=_enum(row, "status", DocumentStatus, src),
            subtotal=_amount(row, "subtotal", src),
            tax_amount=_amount(row, "tax_amount", src),
            discount=_optional_amount(row, "discount", src) or ZERO,
            total=_amount(row, "total", src),
            issued_at=_timestamp(row, "issued_at", src, tz_name),
            card_commission_amount=(
                _optional_amount(row, "card_commission_amount", src) or ZERO
            ),
            document_type=_enum(
                row, "document_type", DocumentType, src, DocumentType.SALE
            ),
            lines=tuple(lines_by_document.get(row["id"], ())),
        )
        for row in rows
    ]


def read_ledger_directory(
    directory: PathLike,
    organization_id: str,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> LedgerFacts:
    """
    Read every known ledger CSV file found in ``directory``.

    Parameters
    ----------
    directory:
        Directory containing the CSV exports (see module docstring).
    organization_id:
        Organization the records belong to. CSV rows do not carry it.
    timezone_name:
        Business timezone used for timestamps without an explicit offset.

    Returns
    -------
    LedgerFacts
        Typed records, sales documents carrying their lines.

    Raises
    ------
    FileNotFoundError
        If ``directory`` does not exist.
    ValueError
        If a file has an invalid structure or invalid values, or if
        document_lines.csv references a document that is not in
        sales_documents.csv.
    """
    base = Path(directory)
    if not base.is_dir():
        raise FileNotFoundError(f"Import directory not found: {base}")

    get_timezone(timezone_name)
    org = organization_id

    def present(name: str) -> Optional[Path]:
        path = base / name
        return path if path.is_file() else None

    def rows_of(name: str, required: set[str], optional: set[str] = frozenset()):
        path = present(name)
        if path is None:
            return []
        return _read_table(path, required, optional)

    # 1) Sales documents and their lines
    lines_path = present("document_lines.csv")
    lines_by_document = _read_document_lines(lines_path) if lines_path else {}

    sales_path = present("sales_documents.csv")
    sales_documents = (
        _read_sales_documents(sales_path, org, timezone_name, lines_by_document)
        if sales_path
        else []
    )
    unknown = set(lines_by_document).difference(doc.id for doc in sales_documents)
    if unknown:
        ids = ", ".join(sorted(unknown))
        raise ValueError(
            f"document_lines.csv references unknown sales document(s): {ids}"
        )

    # 2) Collections
    src = "payments.csv"
    payments = [
        Payment(
            id=row["id"],
            organization_id=org,
            amount=_amount(row, "amount", src),
            paid_at=_timestamp(row, "paid_at", src, timezone_name),
            customer_id=_text(row, "customer_id"),
        )
        for row in rows_of(src, {"id", "amount", "paid_at"}, {"customer_id"})
    ]

    src = "project_payments.csv"
    project_payments = [
        ProjectPayment(
            id=row["id"],
            organization_id=org,
            project_id=row["project_id"],
            amount=_amount(row, "amount", src),
            paid_at=_timestamp(row, "paid_at", src, timezone_name),
        )
        for row in rows_of(src, {"id", "project_id", "amount", "paid_at"})
    ]

    # 3) Treasury
    src = "treasury_movements.csv"
    treasury_movements = [
        TreasuryMovement(
            id=row["id"],
            organization_id=org,
            type=_enum(row, "type", TreasuryType, src),
            amount=_amount(row, "amount", src),
            occurred_at=_timestamp(row, "occurred_at", src, timezone_name),
            category=_enum(row, "category", TreasuryCategory, src, TreasuryCategory.OTHER),
            source=_enum(row, "source", TreasurySource, src, TreasurySource.OTHER),
        )
        for row in rows_of(
            src, {"id", "type", "amount", "occurred_at"}, {"category", "source"}
        )
    ]

    # 4) Expenses
    src = "operational_expenses.csv"
    operational_expenses = [
        OperationalExpense(
            id=row["id"],
            organization_id=org,
            amount=_amount(row, "amount", src),
            expense_date=_timestamp(row, "expense_date", src, timezone_name),
        )
        for row in rows_of(src, {"id", "amount", "expense_date"})
    ]

    src = "project_expenses.csv"
    project_expenses = [
        ProjectExpense(
            id=row["id"],
            organization_id=org,
            project_id=row["project_id"],
            amount=_amount(row, "amount", src),
            expense_date=_timestamp(row, "expense_date", src, timezone_name),
        )
        for row in rows_of(src, {"id", "project_id", "amount", "expense_date"})
    ]

    src = "project_resources.csv"
    project_resources = [
        ProjectResource(
            id=row["id"],
            organization_id=org,
            project_id=row["project_id"],
            total_cost=_amount(row, "total_cost", src),
            created_at=_timestamp(row, "created_at", src, timezone_name),
        )
        for row in rows_of(src, {"id", "project_id", "total_cost", "created_at"})
    ]

    # 5) Point-in-time facts
    src = "accounts_payable.csv"
    accounts_payable = [
        AccountPayable(
            id=row["id"],
            organization_id=org,
            balance=_amount(row, "balance", src),
            status=_enum(row, "status", PayableStatus, src, PayableStatus.PENDING),
        )
        for row in rows_of(src, {"id", "balance"}, {"status"})
    ]

    src = "customers.csv"
    customers = [
        Customer(
            id=row["id"],
            organization_id=org,
            current_debt=_optional_amount(row, "current_debt", src) or ZERO,
        )
        for row in rows_of(src, {"id"}, {"current_debt"})
    ]

    src = "products.csv"
    products = [
        Product(
            id=row["id"],
            organization_id=org,
            current_stock=_optional_amount(row, "current_stock", src) or ZERO,
            cost=_optional_amount(row, "cost", src),
            type=_enum(row, "type", ProductType, src, ProductType.PRODUCT),
            is_active=_flag(row, "is_active", src, True),
            track_inventory=_flag(row, "track_inventory", src, True),
        )
        for row in rows_of(
            src,
            {"id"},
            {"current_stock", "cost", "type", "is_active", "track_inventory"},
        )
    ]

    src = "projects.csv"
    projects = [
        Project(
            id=row["id"],
            organization_id=org,
            status=_enum(row, "status", ProjectStatus, src, ProjectStatus.IN_PROGRESS),
            contracted_amount=_optional_amount(row, "contracted_amount", src),
            quote_total=_optional_amount(row, "quote_total", src),
        )
        for row in rows_of(src, {"id"}, {"status", "contracted_amount", "quote_total"})
    ]

    return LedgerFacts(
        sales_documents=tuple(sales_documents),
        payments=tuple(payments),
        project_payments=tuple(project_payments),
        treasury_movements=tuple(treasury_movements),
        operational_expenses=tuple(operational_expenses),
        project_expenses=tuple(project_expenses),
        project_resources=tuple(project_resources),
        accounts_payable=tuple(accounts_payable),
        customers=tuple(customers),
        products=tuple(products),
        projects=tuple(projects),
    )