# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SMB Cashflow.

This module provides the SQLite storage used by the command-line tool and
a ``Ledger`` implementation that answers the engine's reads with SQL
aggregates. It is responsible for:

- Initializing the database schema.
- Writing ledger facts (organizations, sales documents and their lines,
  collections, treasury movements, expenses, payables, customers, products,
  projects) in bulk, typically after a CSV import.
- Exposing ``SqliteLedger``, the read-only port consumed by the
  reconciliation engine.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

One table per fact type, every row scoped to an organization:

- organizations        (id, name)
- sales_documents      (id, organization_id, document_type, status,
                        payment_method, subtotal_cents, tax_cents,
                        discount_cents, total_cents, card_commission_cents,
                        issued_at)
- document_lines       (id, document_id, line_no, quantity, unit_cost_cents,
                        product_id)
- payments             (id, organization_id, customer_id, amount_cents,
                        paid_at)
- project_payments     (id, organization_id, project_id, amount_cents,
                        paid_at)
- treasury_movements   (id, organization_id, type, category, source,
                        amount_cents, occurred_at)
- operational_expenses (id, organization_id, amount_cents, expense_date)
- project_expenses     (id, organization_id, project_id, amount_cents,
                        expense_date)
- project_resources    (id, organization_id, project_id, total_cost_cents,
                        created_at)
- accounts_payable     (id, organization_id, balance_cents, status)
- customers            (id, organization_id, current_debt_cents)
- products             (id, organization_id, type, is_active,
                        track_inventory, current_stock, cost_cents)
- projects             (id, organization_id, status,
                        contracted_amount_cents, quote_total_cents)

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- Amounts are stored as signed integer cents (``*_cents`` columns) and
  converted back to ``Decimal`` on read.
- Quantities and stock levels are stored as decimal TEXT to stay exact.
- Timestamps are stored as UTC ISO-8601 text with a fixed layout
  (``YYYY-MM-DDTHH:MM:SS.ffffffZ``) so that string comparison matches
  chronological order and range filters can use ``BETWEEN``.
- Foreign key enforcement is explicitly enabled.
- Writes are upserts keyed on the record id: re-importing the same file
  updates rows instead of duplicating them.
- The database runs in WAL journal mode: an import can commit while a
  report holds a read snapshot.
- Outside a snapshot every read opens its own connection, so
  ``SqliteLedger`` can be queried from several threads at once. Inside
  ``SqliteLedger.snapshot()`` all reads share one connection and one read
  transaction, serialized by a lock.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Optional

from .ledger import (
    NO_TREASURY_FILTER,
    Aggregate,
    Ledger,
    ProductValuation,
    ProjectReceivable,
    SaleCostLine,
    SaleFact,
    TreasuryFilter,
)
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
    TreasuryMovement,
    TreasuryType,
)
from .money import HUNDRED, UNIT, to_decimal

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SMB Cashflow.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class ImportStats:
    """
    Summary of a bulk write of ledger facts.

    Attributes
    ----------
    rows_written:
        Number of rows written (inserted or updated) per table.
    """

    rows_written: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.rows_written.values())


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


_UTC_LAYOUT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(
    cfg: DatabaseConfig, *, check_same_thread: bool = True
) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path, check_same_thread=check_same_thread)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _to_utc_text(value: datetime) -> str:
    """Serialize an aware datetime as sortable UTC text."""
    if value.tzinfo is None:
        raise ValueError(f"Naive datetime cannot be stored: {value!r}")
    return value.astimezone(timezone.utc).strftime(_UTC_LAYOUT)


def _to_cents(value: Any) -> int:
    """Convert a monetary value to integer cents (ROUND_HALF_UP)."""
    return int((to_decimal(value) * HUNDRED).quantize(UNIT, rounding=ROUND_HALF_UP))


def _to_optional_cents(value: Any) -> Optional[int]:
    return None if value is None else _to_cents(value)


def _from_cents(cents: Any) -> Decimal:
    return Decimal(int(cents or 0)) / HUNDRED


def _from_optional_cents(cents: Any) -> Optional[Decimal]:
    return None if cents is None else _from_cents(cents)


def _enum_value(value: Any) -> str:
    return str(getattr(value, "value", value))


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS organizations (
            id   TEXT PRIMARY KEY,
            name TEXT NOT NULL
        );
        """
    )

    # sales_documents: monetary facts as computed by document_totals
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS sales_documents (
            id                    TEXT    PRIMARY KEY,
            organization_id       TEXT    NOT NULL,
            document_type         TEXT    NOT NULL DEFAULT 'SALE',
            status                TEXT    NOT NULL,
            payment_method        TEXT    NOT NULL,
            subtotal_cents        INTEGER NOT NULL,
            tax_cents             INTEGER NOT NULL,
            discount_cents        INTEGER NOT NULL DEFAULT 0,
            total_cents           INTEGER NOT NULL,
            card_commission_cents INTEGER NOT NULL DEFAULT 0,
            issued_at             TEXT    NOT NULL,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    # document_lines: sold lines with their cost snapshot (NULL = unpriced)
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS document_lines (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            document_id     TEXT    NOT NULL,
            line_no         INTEGER NOT NULL,
            quantity        TEXT    NOT NULL,
            unit_cost_cents INTEGER,
            product_id      TEXT,

            FOREIGN KEY (document_id) REFERENCES sales_documents(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS payments (
            id              TEXT    PRIMARY KEY,
            organization_id TEXT    NOT NULL,
            customer_id     TEXT,
            amount_cents    INTEGER NOT NULL,
            paid_at         TEXT    NOT NULL,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS project_payments (
            id              TEXT    PRIMARY KEY,
            organization_id TEXT    NOT NULL,
            project_id      TEXT    NOT NULL,
            amount_cents    INTEGER NOT NULL,
            paid_at         TEXT    NOT NULL,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS treasury_movements (
            id              TEXT    PRIMARY KEY,
            organization_id TEXT    NOT NULL,
            type            TEXT    NOT NULL,  -- 'INFLOW' | 'OUTFLOW'
            category        TEXT    NOT NULL DEFAULT 'OTHER',
            source          TEXT    NOT NULL DEFAULT 'OTHER',
            amount_cents    INTEGER NOT NULL,
            occurred_at     TEXT    NOT NULL,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS operational_expenses (
            id              TEXT    PRIMARY KEY,
            organization_id TEXT    NOT NULL,
            amount_cents    INTEGER NOT NULL,
            expense_date    TEXT    NOT NULL,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS project_expenses (
            id              TEXT    PRIMARY KEY,
            organization_id TEXT    NOT NULL,
            project_id      TEXT    NOT NULL,
            amount_cents    INTEGER NOT NULL,
            expense_date    TEXT    NOT NULL,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS project_resources (
            id               TEXT    PRIMARY KEY,
            organization_id  TEXT    NOT NULL,
            project_id       TEXT    NOT NULL,
            total_cost_cents INTEGER NOT NULL,
            created_at       TEXT    NOT NULL,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS accounts_payable (
            id              TEXT    PRIMARY KEY,
            organization_id TEXT    NOT NULL,
            balance_cents   INTEGER NOT NULL,
            status          TEXT    NOT NULL,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS customers (
            id                 TEXT    PRIMARY KEY,
            organization_id    TEXT    NOT NULL,
            current_debt_cents INTEGER NOT NULL DEFAULT 0,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS products (
            id              TEXT    PRIMARY KEY,
            organization_id TEXT    NOT NULL,
            type            TEXT    NOT NULL DEFAULT 'PRODUCT',
            is_active       INTEGER NOT NULL DEFAULT 1,
            track_inventory INTEGER NOT NULL DEFAULT 1,
            current_stock   TEXT    NOT NULL DEFAULT '0',
            cost_cents      INTEGER,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS projects (
            id                      TEXT    PRIMARY KEY,
            organization_id         TEXT    NOT NULL,
            status                  TEXT    NOT NULL,
            contracted_amount_cents INTEGER,
            quote_total_cents       INTEGER,

            FOREIGN KEY (organization_id) REFERENCES organizations(id)
        );
        """
    )

    # Indexes for the range reads issued by the engine
    for table, column in (
        ("sales_documents", "issued_at"),
        ("payments", "paid_at"),
        ("project_payments", "paid_at"),
        ("treasury_movements", "occurred_at"),
        ("operational_expenses", "expense_date"),
        ("project_expenses", "expense_date"),
        ("project_resources", "created_at"),
    ):
        conn.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{table}_org_{column} "
            f"ON {table}(organization_id, {column});"
        )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_document_lines_document
            ON document_lines(document_id);
        """
    )

    conn.commit()


# ---------------------------------------------------------------------------
# Row builders (entity -> table row)
# ---------------------------------------------------------------------------


def _organization_row(org: Organization) -> dict[str, Any]:
    return {"id": org.id, "name": org.name}


def _sales_document_row(doc: SalesDocument) -> dict[str, Any]:
    return {
        "id": doc.id,
        "organization_id": doc.organization_id,
        "document_type": _enum_value(doc.document_type),
        "status": _enum_value(doc.status),
        "payment_method": _enum_value(doc.payment_method),
        "subtotal_cents": _to_cents(doc.subtotal),
        "tax_cents": _to_cents(doc.tax_amount),
        "discount_cents": _to_cents(doc.discount),
        "total_cents": _to_cents(doc.total),
        "card_commission_cents": _to_cents(doc.card_commission_amount),
        "issued_at": _to_utc_text(doc.issued_at),
    }


def _payment_row(payment: Payment) -> dict[str, Any]:
    return {
        "id": payment.id,
        "organization_id": payment.organization_id,
        "customer_id": payment.customer_id,
        "amount_cents": _to_cents(payment.amount),
        "paid_at": _to_utc_text(payment.paid_at),
    }


def _project_payment_row(payment: ProjectPayment) -> dict[str, Any]:
    return {
        "id": payment.id,
        "organization_id": payment.organization_id,
        "project_id": payment.project_id,
        "amount_cents": _to_cents(payment.amount),
        "paid_at": _to_utc_text(payment.paid_at),
    }


def _treasury_movement_row(movement: TreasuryMovement) -> dict[str, Any]:
    return {
        "id": movement.id,
        "organization_id": movement.organization_id,
        "type": _enum_value(movement.type),
        "category": _enum_value(movement.category),
        "source": _enum_value(movement.source),
        "amount_cents": _to_cents(movement.amount),
        "occurred_at": _to_utc_text(movement.occurred_at),
    }


def _operational_expense_row(expense: OperationalExpense) -> dict[str, Any]:
    return {
        "id": expense.id,
        "organization_id": expense.organization_id,
        "amount_cents": _to_cents(expense.amount),
        "expense_date": _to_utc_text(expense.expense_date),
    }


def _project_expense_row(expense: ProjectExpense) -> dict[str, Any]:
    return {
        "id": expense.id,
        "organization_id": expense.organization_id,
        "project_id": expense.project_id,
        "amount_cents": _to_cents(expense.amount),
        "expense_date": _to_utc_text(expense.expense_date),
    }


def _project_resource_row(resource: ProjectResource) -> dict[str, Any]:
    return {
        "id": resource.id,
        "organization_id": resource.organization_id,
        "project_id": resource.project_id,
        "total_cost_cents": _to_cents(resource.total_cost),
        "created_at": _to_utc_text(resource.created_at),
    }


def _account_payable_row(payable: AccountPayable) -> dict[str, Any]:
    return {
        "id": payable.id,
        "organization_id": payable.organization_id,
        "balance_cents": _to_cents(payable.balance),
        "status": _enum_value(payable.status),
    }


def _customer_row(customer: Customer) -> dict[str, Any]:
    return {
        "id": customer.id,
        "organization_id": customer.organization_id,
        "current_debt_cents": _to_cents(customer.current_debt),
    }


def _product_row(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "organization_id": product.organization_id,
        "type": _enum_value(product.type),
        "is_active": int(product.is_active),
        "track_inventory": int(product.track_inventory),
        "current_stock": str(to_decimal(product.current_stock)),
        "cost_cents": _to_optional_cents(product.cost),
    }


def _project_row(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "organization_id": project.organization_id,
        "status": _enum_value(project.status),
        "contracted_amount_cents": _to_optional_cents(project.contracted_amount),
        "quote_total_cents": _to_optional_cents(project.quote_total),
    }


def _upsert(conn: sqlite3.Connection, table: str, rows: Sequence[dict[str, Any]]) -> int:
    """Insert rows, updating existing ones on id conflicts."""
    if not rows:
        return 0

    columns = list(rows[0].keys())
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{col} = excluded.{col}" for col in columns if col != "id")
    sql = (
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates};"
    )
    conn.executemany(sql, [tuple(row[col] for col in columns) for row in rows])
    return len(rows)


def _replace_document_lines(
    conn: sqlite3.Connection, documents: Sequence[SalesDocument]
) -> int:
    """Rewrite the lines of each document from its ``lines`` tuple."""
    written = 0
    for doc in documents:
        conn.execute("DELETE FROM document_lines WHERE document_id = ?;", (doc.id,))
        rows = [
            (
                doc.id,
                line_no,
                str(to_decimal(line.quantity)),
                _to_optional_cents(line.unit_cost),
                line.product_id,
            )
            for line_no, line in enumerate(doc.lines, start=1)
        ]
        conn.executemany(
            """
            INSERT INTO document_lines (
                document_id, line_no, quantity, unit_cost_cents, product_id
            )
            VALUES (?, ?, ?, ?, ?);
            """,
            rows,
        )
        written += len(rows)
    return written


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if it does not exist.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        conn.execute("PRAGMA journal_mode = WAL;")
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def write_ledger_facts(
    cfg: DatabaseConfig,
    *,
    organizations: Iterable[Organization] = (),
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
) -> ImportStats:
    """
    Write a batch of ledger facts in a single transaction.

    Organizations are written first so that foreign keys of the other
    tables resolve. Sales documents carry their lines; existing lines of a
    re-imported document are replaced.

    Returns
    -------
    ImportStats
        Number of rows written per table.

    Raises
    ------
    ValueError
        If a timestamp is naive or an amount is not numeric.
    sqlite3.Error
        If database operations fail (e.g. unknown organization id). The
        whole batch is rolled back in that case.
    """
    init_database(cfg)

    documents = list(sales_documents)
    batches: list[tuple[str, list[dict[str, Any]]]] = [
        ("organizations", [_organization_row(o) for o in organizations]),
        ("sales_documents", [_sales_document_row(d) for d in documents]),
        ("payments", [_payment_row(p) for p in payments]),
        ("project_payments", [_project_payment_row(p) for p in project_payments]),
        (
            "treasury_movements",
            [_treasury_movement_row(m) for m in treasury_movements],
        ),
        (
            "operational_expenses",
            [_operational_expense_row(e) for e in operational_expenses],
        ),
        ("project_expenses", [_project_expense_row(e) for e in project_expenses]),
        ("project_resources", [_project_resource_row(r) for r in project_resources]),
        ("accounts_payable", [_account_payable_row(p) for p in accounts_payable]),
        ("customers", [_customer_row(c) for c in customers]),
        ("products", [_product_row(p) for p in products]),
        ("projects", [_project_row(p) for p in projects]),
    ]

    conn = _connect(cfg)
    try:
        rows_written: dict[str, int] = {}
        with conn:
            for table, rows in batches:
                rows_written[table] = _upsert(conn, table, rows)
            rows_written["document_lines"] = _replace_document_lines(conn, documents)
        return ImportStats(rows_written=rows_written)
    finally:
        conn.close()


def get_organization(cfg: DatabaseConfig, organization_id: str) -> Optional[Organization]:
    """Return the organization with the given id, or None."""
    conn = _connect(cfg)
    try:
        row = conn.execute(
            "SELECT id, name FROM organizations WHERE id = ?;", (organization_id,)
        ).fetchone()
    finally:
        conn.close()

    if row is None:
        return None
    return Organization(id=row[0], name=row[1])


# ---------------------------------------------------------------------------
# Ledger implementation
# ---------------------------------------------------------------------------


class SqliteLedger(Ledger):
    """
    ``Ledger`` backed by the SMB Cashflow SQLite database.

    Outside a snapshot each read opens and closes its own connection, and
    the engine issues reads concurrently. ``snapshot()`` yields a ledger
    pinned to a single read transaction instead.
    Date bounds are converted to UTC text and filtered with ``BETWEEN``,
    which is inclusive of both ends.
    """

    def __init__(
        self,
        cfg: DatabaseConfig,
        *,
        connection: Optional[sqlite3.Connection] = None,
    ) -> None:
        _ensure_sqlite(cfg)
        self.cfg = cfg
        self._connection = connection
        self._lock = threading.Lock()

    @contextmanager
    def snapshot(self) -> Iterator[SqliteLedger]:
        """
        Yield a ledger whose reads all run in one read transaction.

        The transaction is opened and its snapshot fixed before the ledger
        is yielded; commits made by other connections afterwards are not
        visible to it. Entering a snapshot of a pinned ledger yields the
        same ledger.
        """
        if self._connection is not None:
            yield self
            return

        conn = _connect(self.cfg, check_same_thread=False)
        pinned = SqliteLedger(self.cfg, connection=conn)
        try:
            conn.execute("BEGIN;")
            # A WAL read transaction takes its snapshot at the first read.
            conn.execute("SELECT COUNT(*) FROM organizations;").fetchone()
            yield pinned
        finally:
            with pinned._lock:
                conn.rollback()
                conn.close()

    def _fetchall(self, sql: str, params: Sequence[Any]) -> list[tuple]:
        if self._connection is not None:
            with self._lock:
                return self._connection.execute(sql, tuple(params)).fetchall()

        conn = _connect(self.cfg)
        try:
            return conn.execute(sql, tuple(params)).fetchall()
        finally:
            conn.close()

    def _aggregate(self, sql: str, params: Sequence[Any]) -> Aggregate:
        rows = self._fetchall(sql, params)
        total_cents, count = rows[0]
        return Aggregate(total=_from_cents(total_cents), count=int(count))

    def _range_aggregate(
        self,
        table: str,
        amount_column: str,
        date_column: str,
        organization_id: str,
        start: datetime,
        end: datetime,
    ) -> Aggregate:
        return self._aggregate(
            f"""
            SELECT COALESCE(SUM({amount_column}), 0), COUNT(*)
              FROM {table}
             WHERE organization_id = ?
               AND {date_column} BETWEEN ? AND ?;
            """,
            (organization_id, _to_utc_text(start), _to_utc_text(end)),
        )

    # -- Range reads ------------------------------------------------------

    def organization_exists(self, organization_id: str) -> bool:
        rows = self._fetchall(
            "SELECT 1 FROM organizations WHERE id = ?;", (organization_id,)
        )
        return bool(rows)

    def paid_sales(
        self, organization_id: str, start: datetime, end: datetime
    ) -> list[SaleFact]:
        rows = self._fetchall(
            """
            SELECT id, payment_method, subtotal_cents, tax_cents,
                   discount_cents, total_cents, card_commission_cents
              FROM sales_documents
             WHERE organization_id = ?
               AND document_type = ?
               AND status = ?
               AND issued_at BETWEEN ? AND ?
             ORDER BY issued_at, id;
            """,
            (
                organization_id,
                DocumentType.SALE.value,
                DocumentStatus.PAID.value,
                _to_utc_text(start),
                _to_utc_text(end),
            ),
        )
        return [
            SaleFact(
                id=row[0],
                payment_method=PaymentMethod(row[1]),
                subtotal=_from_cents(row[2]),
                tax_amount=_from_cents(row[3]),
                discount=_from_cents(row[4]),
                total=_from_cents(row[5]),
                card_commission_amount=_from_cents(row[6]),
            )
            for row in rows
        ]

    def sale_cost_lines(
        self, organization_id: str, start: datetime, end: datetime
    ) -> list[SaleCostLine]:
        rows = self._fetchall(
            """
            SELECT l.document_id, l.quantity, l.unit_cost_cents
              FROM document_lines AS l
              JOIN sales_documents AS d ON d.id = l.document_id
             WHERE d.organization_id = ?
               AND d.document_type = ?
               AND d.status = ?
               AND d.issued_at BETWEEN ? AND ?
             ORDER BY d.issued_at, d.id, l.line_no;
            """,
            (
                organization_id,
                DocumentType.SALE.value,
                DocumentStatus.PAID.value,
                _to_utc_text(start),
                _to_utc_text(end),
            ),
        )
        return [
            SaleCostLine(
                document_id=row[0],
                quantity=Decimal(row[1]),
                unit_cost=_from_optional_cents(row[2]),
            )
            for row in rows
        ]

    def customer_payments(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate:
        return self._range_aggregate(
            "payments", "amount_cents", "paid_at", organization_id, start, end
        )

    def project_payments(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate:
        return self._range_aggregate(
            "project_payments", "amount_cents", "paid_at", organization_id, start, end
        )

    def treasury_movements(
        self,
        organization_id: str,
        start: datetime,
        end: datetime,
        movement_type: TreasuryType,
        treasury_filter: TreasuryFilter = NO_TREASURY_FILTER,
    ) -> Aggregate:
        clauses = [
            "organization_id = ?",
            "type = ?",
            "occurred_at BETWEEN ? AND ?",
        ]
        params: list[Any] = [
            organization_id,
            _enum_value(movement_type),
            _to_utc_text(start),
            _to_utc_text(end),
        ]
        if treasury_filter.category is not None:
            clauses.append("category = ?")
            params.append(_enum_value(treasury_filter.category))
        if treasury_filter.source is not None:
            clauses.append("source = ?")
            params.append(_enum_value(treasury_filter.source))

        where_sql = " AND ".join(clauses)
        return self._aggregate(
            f"SELECT COALESCE(SUM(amount_cents), 0), COUNT(*) "
            f"FROM treasury_movements WHERE {where_sql};",
            params,
        )

    def operational_expenses(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate:
        return self._range_aggregate(
            "operational_expenses",
            "amount_cents",
            "expense_date",
            organization_id,
            start,
            end,
        )

    def project_expenses(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate:
        return self._range_aggregate(
            "project_expenses",
            "amount_cents",
            "expense_date",
            organization_id,
            start,
            end,
        )

    def project_resources(
        self, organization_id: str, start: datetime, end: datetime
    ) -> Aggregate:
        return self._range_aggregate(
            "project_resources",
            "total_cost_cents",
            "created_at",
            organization_id,
            start,
            end,
        )

    # -- Point-in-time reads ----------------------------------------------

    def customer_receivables(self, organization_id: str) -> Aggregate:
        return self._aggregate(
            """
            SELECT COALESCE(SUM(current_debt_cents), 0), COUNT(*)
              FROM customers
             WHERE organization_id = ?
               AND current_debt_cents > 0;
            """,
            (organization_id,),
        )

    def active_payables(self, organization_id: str) -> Aggregate:
        statuses = sorted(status.value for status in ACTIVE_PAYABLE_STATUSES)
        placeholders = ", ".join("?" for _ in statuses)
        return self._aggregate(
            f"""
            SELECT COALESCE(SUM(balance_cents), 0), COUNT(*)
              FROM accounts_payable
             WHERE organization_id = ?
               AND balance_cents > 0
               AND status IN ({placeholders});
            """,
            (organization_id, *statuses),
        )

    def valued_products(self, organization_id: str) -> list[ProductValuation]:
        rows = self._fetchall(
            """
            SELECT current_stock, cost_cents
              FROM products
             WHERE organization_id = ?
               AND type = ?
               AND is_active = 1
               AND track_inventory = 1
               AND cost_cents IS NOT NULL
             ORDER BY id;
            """,
            (organization_id, ProductType.PRODUCT.value),
        )
        return [
            ProductValuation(current_stock=Decimal(row[0]), cost=_from_cents(row[1]))
            for row in rows
        ]

    def open_projects(self, organization_id: str) -> list[ProjectReceivable]:
        project_rows = self._fetchall(
            """
            SELECT id, contracted_amount_cents, quote_total_cents
              FROM projects
             WHERE organization_id = ?
               AND status <> ?
             ORDER BY id;
            """,
            (organization_id, ProjectStatus.CANCELLED.value),
        )
        payment_rows = self._fetchall(
            """
            SELECT project_id, amount_cents
              FROM project_payments
             WHERE organization_id = ?
             ORDER BY paid_at, id;
            """,
            (organization_id,),
        )

        payments_by_project: dict[str, list[Decimal]] = {}
        for project_id, amount_cents in payment_rows:
            payments_by_project.setdefault(project_id, []).append(
                _from_cents(amount_cents)
            )

        return [
            ProjectReceivable(
                contracted_amount=_from_optional_cents(row[1]),
                quote_total=_from_optional_cents(row[2]),
                payments=tuple(payments_by_project.get(row[0], ())),
            )
            for row in project_rows
        ]
