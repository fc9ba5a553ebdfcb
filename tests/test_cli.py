import pytest

from smb_cashflow import __version__
from smb_cashflow.cli import main


def _setup(tmp_path):
    """Write a config file and a small export directory; return (config, exports)."""
    config = tmp_path / "smb_cashflow_config.toml"
    config.write_text(
        '[database]\npath = "db/cashflow.sqlite"\n\n[logging]\nlevel = "WARNING"\n',
        encoding="utf-8",
    )

    exports = tmp_path / "exports"
    exports.mkdir()
    (exports / "sales_documents.csv").write_text(
        "id,payment_method,status,subtotal,tax_amount,total,issued_at\n"
        "s1,CASH,PAID,10000,1900,11900,2026-03-02 12:00:00\n"
        "s2,CREDIT,PAID,50000,9500,59500,2026-03-20 12:00:00\n",
        encoding="utf-8",
    )
    (exports / "document_lines.csv").write_text(
        "document_id,quantity,unit_cost\ns1,2,3000\ns2,5,\n", encoding="utf-8"
    )
    (exports / "payments.csv").write_text(
        "id,amount,paid_at\np1,59500,2026-04-10 09:00:00\n", encoding="utf-8"
    )
    (exports / "operational_expenses.csv").write_text(
        "id,amount,expense_date\ne1,4000,2026-03-15\n", encoding="utf-8"
    )
    return config, exports


def _run(config, *args) -> None:
    main(["--config", str(config), *args])


def test_version_flag(capsys) -> None:
    main(["--version"])
    assert capsys.readouterr().out.strip() == f"smb_cashflow version {__version__}"


def test_import_then_monthly_table(tmp_path, capsys) -> None:
    config, exports = _setup(tmp_path)

    _run(config, "init-db")
    _run(config, "import", str(exports), "--organization", "acme", "--name", "Acme")
    out = capsys.readouterr().out
    assert "sales_documents" in out
    assert (tmp_path / "db" / "cashflow.sqlite").exists()

    _run(config, "monthly", "--organization", "acme", "--month", "2026-03")
    out = capsys.readouterr().out
    assert "=== Monthly summary - March 2026 ===" in out
    assert "71400" in out  # sales total
    assert "Credit sales are recognised in cash flow only when collected" in out


def test_coverage_and_balance(tmp_path, capsys) -> None:
    config, exports = _setup(tmp_path)
    _run(config, "import", str(exports), "--organization", "acme")
    capsys.readouterr()

    _run(config, "coverage", "--organization", "acme", "--month", "2026-03")
    out = capsys.readouterr().out
    assert "50.0" in out

    _run(config, "balance", "--organization", "acme", "--month", "2026-04")
    out = capsys.readouterr().out
    assert "=== Balance snapshot - April 2026 ===" in out


def test_csv_display_mode_writes_files(tmp_path, capsys) -> None:
    config, exports = _setup(tmp_path)
    _run(config, "import", str(exports), "--organization", "acme")
    output_dir = tmp_path / "out"

    _run(
        config,
        "series",
        "--organization",
        "acme",
        "--months",
        "3",
        "--display-mode",
        "csv",
        "--output",
        str(output_dir),
    )

    files = list(output_dir.glob("series_3m_*.csv"))
    assert len(files) == 1
    assert "Wrote" in capsys.readouterr().out
    assert files[0].read_text(encoding="utf-8").splitlines()[0].startswith("month,label")


def test_export_writes_sectioned_report(tmp_path, capsys) -> None:
    config, exports = _setup(tmp_path)
    _run(config, "import", str(exports), "--organization", "acme", "--name", "Acme")
    output_dir = tmp_path / "reports"

    _run(
        config,
        "export",
        "--organization",
        "acme",
        "--month",
        "2026-03",
        "--months",
        "3",
        "--output",
        str(output_dir),
    )

    report = output_dir / "cashflow-report-2026-03.csv"
    text = report.read_text(encoding="utf-8-sig")
    assert '"Organization";"Acme"' in text
    assert '"MONTHLY SUMMARY"' in text


def test_months_outside_configured_bounds(tmp_path) -> None:
    config, exports = _setup(tmp_path)
    _run(config, "import", str(exports), "--organization", "acme")

    with pytest.raises(SystemExit) as excinfo:
        _run(config, "series", "--organization", "acme", "--months", "48")
    assert excinfo.value.code == 2


def test_unknown_organization_exits_with_code_message(tmp_path) -> None:
    config, _ = _setup(tmp_path)
    _run(config, "init-db")

    with pytest.raises(SystemExit) as excinfo:
        _run(config, "monthly", "--organization", "ghost", "--month", "2026-03")
    assert str(excinfo.value.code).startswith("ORGANIZATION_NOT_FOUND")


def test_invalid_month_exits(tmp_path) -> None:
    config, _ = _setup(tmp_path)
    _run(config, "init-db")

    with pytest.raises(SystemExit) as excinfo:
        _run(config, "monthly", "--organization", "acme", "--month", "03-2026")
    assert str(excinfo.value.code).startswith("INVALID_PERIOD")


def test_missing_import_directory_exits(tmp_path) -> None:
    config, _ = _setup(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        _run(config, "import", str(tmp_path / "nope"), "--organization", "acme")
    assert "Import directory not found" in str(excinfo.value.code)


def test_shift_close(tmp_path, capsys) -> None:
    config, _ = _setup(tmp_path)

    _run(
        config,
        "shift-close",
        "--opening-cash",
        "20000",
        "--actual-cash",
        "35900",
        "3990",
        "7995",
        "4000",
    )
    out = capsys.readouterr().out
    assert "expected_cash" in out
    assert "35980" in out
    assert "-80" in out
