import csv

from smb_cashflow.ledger import TreasuryFilter
from smb_cashflow.models import TreasuryCategory
from smb_cashflow.views import (
    SERIES_COLUMNS,
    balance_to_dataframe,
    build_report_rows,
    series_to_dataframe,
    summary_to_dataframe,
    write_report_csv,
)


def test_summary_dataframe_layout_and_values(engine) -> None:
    df = summary_to_dataframe(engine.monthly_summary("acme", "2026-03"))

    assert list(df.columns) == ["display_order", "section", "indicator", "value"]
    assert list(df["display_order"][:3]) == [10, 20, 30]
    assert set(df["section"]) == {"sales", "inflows", "outflows", "result"}

    values = dict(zip(df["indicator"], df["value"]))
    assert values["Sales total"] == 95200
    assert isinstance(values["Sales total"], int)
    assert values["Net cash flow of the month"] == 2395700
    assert values["Gross margin (%)"] == 56.6


def test_balance_dataframe_values(engine) -> None:
    df = balance_to_dataframe(engine.balance_snapshot("acme", "2026-03"))

    values = dict(zip(df["indicator"], df["value"]))
    assert values["Total assets"] == 6365700
    assert values["Accounts payable"] == 500000
    assert values["Net position"] == 5865700
    assert values["Products valued at cost"] == 2


def test_series_dataframe_keeps_order(engine) -> None:
    df = series_to_dataframe(engine.series("acme", 3))

    assert list(df.columns) == SERIES_COLUMNS
    assert list(df["month"]) == ["2026-02", "2026-03", "2026-04"]


def test_report_rows_sections(engine) -> None:
    tfilter = TreasuryFilter(category=TreasuryCategory.CAPITAL_INJECTION)
    summary = engine.monthly_summary("acme", "2026-03", tfilter)
    balance = engine.balance_snapshot("acme", "2026-03", tfilter)
    series = engine.series("acme", 3, tfilter)

    rows = build_report_rows("Acme Ltda", summary, balance, series, tfilter)

    assert rows[0] == ["SMB CASHFLOW - CASH-BASIS REPORT"]
    assert ["Organization", "Acme Ltda"] in rows
    assert ["Treasury category filter", "CAPITAL_INJECTION"] in rows
    assert ["Treasury source filter", "ALL"] in rows
    headers = [row[0] for row in rows if len(row) == 1]
    assert "MONTHLY SUMMARY" in headers
    assert "BALANCE" in headers
    assert "TREND (3 months)" in headers
    assert "NOTES" in headers
    # Sales details stay out of the exported summary section.
    assert all(row[:1] != ["Sales total"] for row in rows)
    assert ["Total cash inflows", summary.as_dict()["cash_inflows_total"]] in rows
    assert [balance.warnings[0]] in rows


def test_write_report_csv(tmp_path, engine) -> None:
    summary = engine.monthly_summary("acme", "2026-01")
    balance = engine.balance_snapshot("acme", "2026-01")
    rows = build_report_rows("Acme", summary, balance, [])

    path = write_report_csv(tmp_path / "out" / "report.csv", rows)

    raw = path.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    text = raw.decode("utf-8-sig")
    assert text.splitlines()[0] == '"SMB CASHFLOW - CASH-BASIS REPORT"'
    assert '"Organization";"Acme"' in text

    with path.open(encoding="utf-8-sig", newline="") as fh:
        parsed = list(csv.reader(fh, delimiter=";"))
    assert parsed[1] == ["Organization", "Acme"]
    assert ["Treasury category filter", "ALL"] in parsed
