import sqlite3
from datetime import datetime
from decimal import Decimal

import pytest

from smb_cashflow.db import (
    DatabaseConfig,
    SqliteLedger,
    get_organization,
    init_database,
    write_ledger_facts,
)
from smb_cashflow.engine import ReconciliationEngine
from smb_cashflow.errors import LedgerReadError
from smb_cashflow.ledger import InMemoryLedger, TreasuryFilter
from smb_cashflow.models import Organization, Payment, TreasuryCategory

D = Decimal


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    db_path = tmp_path / "db" / "test_cashflow.sqlite"
    return DatabaseConfig(engine="sqlite", path=db_path)


def test_init_database_creates_file_and_schema(tmp_path) -> None:
    cfg = make_tmp_db_cfg(tmp_path)

    assert not cfg.path.exists()
    init_database(cfg)
    init_database(cfg)  # idempotent
    assert cfg.path.exists()

    conn = sqlite3.connect(cfg.path)
    try:
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table';")
        }
    finally:
        conn.close()

    assert {"organizations", "sales_documents", "document_lines", "projects"} <= tables


def test_unsupported_engine_is_rejected(tmp_path) -> None:
    cfg = DatabaseConfig(engine="postgres", path=tmp_path / "x.db")
    with pytest.raises(ValueError):
        init_database(cfg)


def test_write_ledger_facts_reports_rows_per_table(tmp_path, ledger_facts) -> None:
    cfg = make_tmp_db_cfg(tmp_path)

    stats = write_ledger_facts(cfg, **ledger_facts)

    assert stats.rows_written["organizations"] == 2
    assert stats.rows_written["sales_documents"] == 7
    assert stats.rows_written["document_lines"] == 4
    assert stats.rows_written["payments"] == 2
    assert stats.total == sum(stats.rows_written.values())
    assert get_organization(cfg, "acme") == Organization(id="acme", name="Acme Ltda")
    assert get_organization(cfg, "ghost") is None


def test_reimport_updates_instead_of_duplicating(tmp_path, ledger_facts) -> None:
    cfg = make_tmp_db_cfg(tmp_path)
    write_ledger_facts(cfg, **ledger_facts)
    write_ledger_facts(cfg, **ledger_facts)
    write_ledger_facts(cfg, organizations=[Organization(id="acme", name="Acme SpA")])

    ledger = SqliteLedger(cfg)
    march_start = datetime.fromisoformat("2026-03-01T00:00:00-03:00")
    march_end = datetime.fromisoformat("2026-03-31T23:59:59.999999-03:00")

    assert len(ledger.paid_sales("acme", march_start, march_end)) == 3
    assert len(ledger.sale_cost_lines("acme", march_start, march_end)) == 4
    assert get_organization(cfg, "acme").name == "Acme SpA"


def test_unknown_organization_rolls_back_the_batch(tmp_path, ledger_facts) -> None:
    cfg = make_tmp_db_cfg(tmp_path)
    write_ledger_facts(cfg, organizations=ledger_facts["organizations"])

    orphan = Payment(
        id="orphan",
        organization_id="ghost",
        amount=D("1"),
        paid_at=datetime.fromisoformat("2026-03-05T12:00:00-03:00"),
    )
    with pytest.raises(sqlite3.IntegrityError):
        write_ledger_facts(
            cfg, payments=[ledger_facts["payments"][0], orphan]
        )

    start = datetime.fromisoformat("2026-03-01T00:00:00-03:00")
    end = datetime.fromisoformat("2026-03-31T23:59:59.999999-03:00")
    assert SqliteLedger(cfg).customer_payments("acme", start, end).count == 0


def test_naive_timestamps_are_refused(tmp_path) -> None:
    cfg = make_tmp_db_cfg(tmp_path)
    naive = Payment(
        id="p", organization_id="acme", amount=D("1"), paid_at=datetime(2026, 3, 5)
    )
    with pytest.raises(ValueError):
        write_ledger_facts(
            cfg, organizations=[Organization(id="acme", name="Acme")], payments=[naive]
        )


@pytest.mark.parametrize("month", ["2026-02", "2026-03", "2026-04"])
def test_sqlite_ledger_matches_in_memory_ledger(tmp_path, ledger_facts, clock, month) -> None:
    """Both ledgers must produce identical summaries and balances."""
    cfg = make_tmp_db_cfg(tmp_path)
    write_ledger_facts(cfg, **ledger_facts)

    in_memory = ReconciliationEngine(InMemoryLedger(**ledger_facts), clock=clock)
    sqlite = ReconciliationEngine(SqliteLedger(cfg), clock=clock)

    assert sqlite.monthly_summary("acme", month) == in_memory.monthly_summary("acme", month)
    assert sqlite.balance_snapshot("acme", month) == in_memory.balance_snapshot("acme", month)
    assert sqlite.cost_coverage("acme", month) == in_memory.cost_coverage("acme", month)


def test_sqlite_treasury_filter(tmp_path, ledger_facts, clock) -> None:
    cfg = make_tmp_db_cfg(tmp_path)
    write_ledger_facts(cfg, **ledger_facts)

    summary = ReconciliationEngine(SqliteLedger(cfg), clock=clock).monthly_summary(
        "acme", "2026-03", TreasuryFilter(category=TreasuryCategory.OWNER_WITHDRAWAL)
    )

    assert summary.treasury_inflows_total == D("0")
    assert summary.treasury_outflows_total == D("200000")


def test_sqlite_amounts_keep_cents(tmp_path) -> None:
    cfg = make_tmp_db_cfg(tmp_path)
    write_ledger_facts(
        cfg,
        organizations=[Organization(id="acme", name="Acme")],
        payments=[
            Payment(
                id="p",
                organization_id="acme",
                amount=D("10.25"),
                paid_at=datetime.fromisoformat("2026-03-05T12:00:00-03:00"),
            )
        ],
    )
    start = datetime.fromisoformat("2026-03-01T00:00:00-03:00")
    end = datetime.fromisoformat("2026-03-31T23:59:59.999999-03:00")

    assert SqliteLedger(cfg).customer_payments("acme", start, end).total == D("10.25")


def test_missing_database_is_a_ledger_error(tmp_path, clock) -> None:
    cfg = make_tmp_db_cfg(tmp_path)  # parent directory does not exist
    eng = ReconciliationEngine(SqliteLedger(cfg), clock=clock)

    with pytest.raises(LedgerReadError):
        eng.monthly_summary("acme", "2026-03")


def test_snapshot_ignores_commits_made_after_it_opened(tmp_path, ledger_facts) -> None:
    cfg = make_tmp_db_cfg(tmp_path)
    write_ledger_facts(cfg, **ledger_facts)
    start = datetime.fromisoformat("2026-03-01T00:00:00-03:00")
    end = datetime.fromisoformat("2026-03-31T23:59:59.999999-03:00")
    late_payment = Payment(
        id="p-late",
        organization_id="acme",
        amount=D("1000"),
        paid_at=datetime.fromisoformat("2026-03-20T10:00:00-03:00"),
    )

    with SqliteLedger(cfg).snapshot() as pinned:
        before = pinned.customer_payments("acme", start, end)
        write_ledger_facts(cfg, payments=[late_payment])
        assert pinned.customer_payments("acme", start, end) == before
        with pinned.snapshot() as nested:
            assert nested is pinned

    after = SqliteLedger(cfg).customer_payments("acme", start, end)
    assert after.total == before.total + D("1000")
    assert after.count == before.count + 1


def test_summary_from_a_snapshot_matches_the_live_ledger(
    tmp_path, ledger_facts, clock
) -> None:
    cfg = make_tmp_db_cfg(tmp_path)
    write_ledger_facts(cfg, **ledger_facts)
    live = ReconciliationEngine(SqliteLedger(cfg), clock=clock)

    with SqliteLedger(cfg).snapshot() as pinned:
        from_snapshot = ReconciliationEngine(pinned, clock=clock).monthly_summary(
            "acme", "2026-03"
        )

    assert from_snapshot == live.monthly_summary("acme", "2026-03")
