# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-line interface for SMB Cashflow.

Usage overview
--------------

    python -m smb_cashflow.cli [--config PATH] [--version] <command> [options]

Commands
--------

init-db
    Create the SQLite database and its schema (idempotent).

import DIR --organization ID [--name NAME]
    Read the ledger CSV exports found in DIR (see io.py for the expected
    files) and write them into the database for the given organization.
    The organization is created (or renamed) as part of the import.

monthly --organization ID [--month YYYY-MM]
    Monthly cash-basis summary.

balance --organization ID [--month YYYY-MM]
    Approximate balance snapshot built on top of the monthly summary.

series --organization ID [--months N]
    Trend over the last N months (bounds from the [series] config section).

coverage --organization ID [--month YYYY-MM]
    Share of sold lines that carry a cost snapshot.

export --organization ID [--month YYYY-MM] [--months N]
    Sectioned CSV report (summary, balance, trend and notes), written to
    the output directory.

shift-close --opening-cash X --actual-cash Y [TOTAL ...]
    Reconcile the cash counted at the end of a shift with the opening float
    plus the cash sales, each rounded to the legal cash denomination.

Common options
--------------
--treasury-category / --treasury-source
    Restrict treasury movements (and only them) to a category or a source.

--display-mode {table,csv,both}
    Override the display.mode setting: print tables, write CSV files under
    --output (default: data/output), or both.

Errors with a stable code (invalid month, unknown organization, ledger
unavailable, insufficient cash, ...) terminate the program with a
"<CODE>: <message>" line.

Examples
--------

    python -m smb_cashflow.cli init-db
    python -m smb_cashflow.cli import exports/2026-03 --organization acme
    python -m smb_cashflow.cli monthly --organization acme --month 2026-03
    python -m smb_cashflow.cli series --organization acme --months 12 \\
        --display-mode both
    python -m smb_cashflow.cli shift-close --opening-cash 20000 \\
        --actual-cash 35990 3990 7995 4000
"""

import argparse
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import AppConfig, load_app_config
from .db import SqliteLedger, get_organization, init_database, write_ledger_facts
from .engine import ReconciliationEngine
from .errors import CashflowError
from .io import read_ledger_directory
from .ledger import TreasuryFilter
from .logging_config import configure_logging, get_logger
from .models import Organization, TreasuryCategory, TreasurySource
from .money import CashRoundingPolicy
from .shifts import reconcile_shift
from .views import (
    balance_to_dataframe,
    build_report_rows,
    series_to_dataframe,
    summary_to_dataframe,
    write_report_csv,
)

logger = get_logger(__name__)

DEFAULT_OUTPUT_DIR = "data/output"


def _add_organization_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--organization",
        required=True,
        help="Identifier of the organization to report on.",
    )


def _add_month_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--month",
        help=(
            "Target month as YYYY-MM in the business timezone. "
            "If omitted, the current month is used."
        ),
    )


def _add_months_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--months",
        type=int,
        help=(
            "Number of trailing months, current month included. "
            "If omitted, series.default_months from config is used."
        ),
    )


def _add_treasury_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--treasury-category",
        dest="treasury_category",
        choices=[c.value for c in TreasuryCategory],
        help="Only count treasury movements of this category.",
    )
    parser.add_argument(
        "--treasury-source",
        dest="treasury_source",
        choices=[s.value for s in TreasurySource],
        help="Only count treasury movements from this source.",
    )


def _add_display_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    parser.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written. "
            f"If omitted, '{DEFAULT_OUTPUT_DIR}' is used."
        ),
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smb_cashflow.cli",
        description=(
            "SMB Cashflow - Cash-basis reconciliation engine for SMBs. "
            "Imports ledger facts, computes monthly cash-basis summaries, "
            "balance snapshots and trends, and reconciles cash register shifts."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_cashflow and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. "
            "If omitted, 'smb_cashflow_config.toml' in the current directory is used."
        ),
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    subparsers.add_parser("init-db", help="Create the database schema if needed.")

    import_parser = subparsers.add_parser(
        "import", help="Import ledger CSV exports from a directory."
    )
    import_parser.add_argument("directory", help="Directory containing the CSV files.")
    _add_organization_option(import_parser)
    import_parser.add_argument(
        "--name",
        help="Display name of the organization (defaults to its identifier).",
    )

    monthly_parser = subparsers.add_parser("monthly", help="Monthly cash-basis summary.")
    _add_organization_option(monthly_parser)
    _add_month_option(monthly_parser)
    _add_treasury_options(monthly_parser)
    _add_display_options(monthly_parser)

    balance_parser = subparsers.add_parser("balance", help="Approximate balance snapshot.")
    _add_organization_option(balance_parser)
    _add_month_option(balance_parser)
    _add_treasury_options(balance_parser)
    _add_display_options(balance_parser)

    series_parser = subparsers.add_parser("series", help="Trend over trailing months.")
    _add_organization_option(series_parser)
    _add_months_option(series_parser)
    _add_treasury_options(series_parser)
    _add_display_options(series_parser)

    coverage_parser = subparsers.add_parser(
        "coverage", help="Share of sold lines with a cost snapshot."
    )
    _add_organization_option(coverage_parser)
    _add_month_option(coverage_parser)
    _add_display_options(coverage_parser)

    export_parser = subparsers.add_parser("export", help="Write the sectioned CSV report.")
    _add_organization_option(export_parser)
    _add_month_option(export_parser)
    _add_months_option(export_parser)
    _add_treasury_options(export_parser)
    export_parser.add_argument(
        "--output",
        dest="output_dir",
        help=f"Output directory for the report. If omitted, '{DEFAULT_OUTPUT_DIR}' is used.",
    )

    shift_parser = subparsers.add_parser(
        "shift-close", help="Reconcile the cash counted at the end of a shift."
    )
    shift_parser.add_argument(
        "--opening-cash",
        dest="opening_cash",
        required=True,
        help="Cash in the drawer when the shift opened.",
    )
    shift_parser.add_argument(
        "--actual-cash",
        dest="actual_cash",
        required=True,
        help="Cash counted when closing the shift.",
    )
    shift_parser.add_argument(
        "totals",
        nargs="*",
        help="Totals of the cash sales of the shift, unrounded.",
    )

    return ap


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _treasury_filter(args: argparse.Namespace) -> TreasuryFilter:
    category = getattr(args, "treasury_category", None)
    source = getattr(args, "treasury_source", None)
    return TreasuryFilter(
        category=TreasuryCategory(category) if category else None,
        source=TreasurySource(source) if source else None,
    )


def _resolve_months(
    parser: argparse.ArgumentParser, args: argparse.Namespace, config: AppConfig
) -> int:
    months = args.months if args.months is not None else config.series.default_months
    bounds = config.series
    if not bounds.min_months <= months <= bounds.max_months:
        parser.error(
            f"--months must be between {bounds.min_months} and "
            f"{bounds.max_months}, got {months}."
        )
    return months


def _build_engine(config: AppConfig) -> ReconciliationEngine:
    return ReconciliationEngine(
        SqliteLedger(config.database),
        timezone=config.timezone,
        max_workers=config.max_workers,
    )


def _render(
    frames: list[tuple[str, str, pd.DataFrame]],
    args: argparse.Namespace,
    config: AppConfig,
) -> None:
    """
    Print and/or write DataFrames according to the display mode.

    ``frames`` holds (title, file stem, DataFrame) triples.
    """
    display_mode = args.display_mode or config.display_mode

    if display_mode in {"table", "both"}:
        for title, _, df in frames:
            print()
            print(f"=== {title} ===")
            print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path(DEFAULT_OUTPUT_DIR)
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

        for _, stem, df in frames:
            path = output_dir / f"{stem}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def _print_warnings(warnings: tuple[str, ...]) -> None:
    if warnings:
        print()
        print("Notes:")
        for warning in warnings:
            print(f"  - {warning}")


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _handle_init_db(args: argparse.Namespace, config: AppConfig) -> None:
    init_database(config.database)
    print(f"Database ready at {config.database.path}")


def _handle_import(args: argparse.Namespace, config: AppConfig) -> None:
    directory = Path(args.directory)
    print(f"Importing ledger facts from {directory} for organization {args.organization!r}...")

    facts = read_ledger_directory(
        directory, args.organization, timezone_name=config.timezone
    )
    stats = write_ledger_facts(
        config.database,
        organizations=[Organization(id=args.organization, name=args.name or args.organization)],
        **facts.as_kwargs(),
    )
    logger.info(
        "ledger_imported",
        organization_id=args.organization,
        directory=str(directory),
        rows=stats.total,
    )

    df = pd.DataFrame(
        sorted(stats.rows_written.items()), columns=["table", "rows_written"]
    )
    print(df.to_string(index=False))


def _handle_monthly(args: argparse.Namespace, config: AppConfig) -> None:
    summary = _build_engine(config).monthly_summary(
        args.organization, args.month, _treasury_filter(args)
    )
    _render(
        [(f"Monthly summary - {summary.label}", f"monthly_{summary.month}",
          summary_to_dataframe(summary))],
        args,
        config,
    )
    _print_warnings(summary.warnings)


def _handle_balance(args: argparse.Namespace, config: AppConfig) -> None:
    balance = _build_engine(config).balance_snapshot(
        args.organization, args.month, _treasury_filter(args)
    )
    _render(
        [(f"Balance snapshot - {balance.label}", f"balance_{balance.month}",
          balance_to_dataframe(balance))],
        args,
        config,
    )
    _print_warnings(balance.warnings)


def _handle_series(
    parser: argparse.ArgumentParser, args: argparse.Namespace, config: AppConfig
) -> None:
    months = _resolve_months(parser, args, config)
    points = _build_engine(config).series(args.organization, months, _treasury_filter(args))
    _render(
        [(f"Trend ({len(points)} months)", f"series_{months}m", series_to_dataframe(points))],
        args,
        config,
    )


def _handle_coverage(args: argparse.Namespace, config: AppConfig) -> None:
    coverage = _build_engine(config).cost_coverage(args.organization, args.month)
    _render(
        [(f"Cost coverage - {coverage.label}", f"coverage_{coverage.month}",
          pd.DataFrame([coverage.as_dict()]))],
        args,
        config,
    )


def _handle_export(
    parser: argparse.ArgumentParser, args: argparse.Namespace, config: AppConfig
) -> None:
    months = _resolve_months(parser, args, config)
    engine = _build_engine(config)
    tfilter = _treasury_filter(args)

    summary = engine.monthly_summary(args.organization, args.month, tfilter)
    balance = engine.balance_snapshot(args.organization, args.month, tfilter)
    series = engine.series(args.organization, months, tfilter)

    organization = get_organization(config.database, args.organization)
    name = organization.name if organization else args.organization

    rows = build_report_rows(name, summary, balance, series, tfilter)
    output_dir = Path(args.output_dir) if args.output_dir else Path(DEFAULT_OUTPUT_DIR)
    path = write_report_csv(output_dir / f"cashflow-report-{summary.month}.csv", rows)
    print(f"Wrote {path} ({len(rows)} rows)")


def _handle_shift_close(args: argparse.Namespace, config: AppConfig) -> None:
    policy = CashRoundingPolicy(config.cash_rounding_unit)
    result = reconcile_shift(args.opening_cash, args.totals, args.actual_cash, policy)

    values = result.as_dict()
    warnings = values.pop("warnings")
    df = pd.DataFrame(list(values.items()), columns=["indicator", "value"])
    print(df.to_string(index=False))
    _print_warnings(tuple(warnings))


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB Cashflow CLI.

    This function parses command-line arguments, loads the application
    configuration, configures logging and dispatches to the selected
    command. Expected errors (``CashflowError`` and invalid input files) are
    turned into a non-zero exit with a one-line message.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smb_cashflow version {__version__}")
        return

    if not args.command:
        parser.print_help()
        return

    if args.config_path:
        config = load_app_config(args.config_path)
    else:
        config = load_app_config()

    configure_logging(config.logging.level, config.logging.format)

    try:
        if args.command == "init-db":
            _handle_init_db(args, config)
        elif args.command == "import":
            _handle_import(args, config)
        elif args.command == "monthly":
            _handle_monthly(args, config)
        elif args.command == "balance":
            _handle_balance(args, config)
        elif args.command == "series":
            _handle_series(parser, args, config)
        elif args.command == "coverage":
            _handle_coverage(args, config)
        elif args.command == "export":
            _handle_export(parser, args, config)
        elif args.command == "shift-close":
            _handle_shift_close(args, config)
    except CashflowError as exc:
        raise SystemExit(str(exc)) from exc
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
