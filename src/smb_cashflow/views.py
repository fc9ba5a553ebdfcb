# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB Cashflow.

This module turns engine results into display-ready structures:

- ``summary_to_dataframe`` / ``balance_to_dataframe``: one row per
  indicator, with columns display_order, section, indicator, value.
- ``series_to_dataframe``: one row per month, oldest first.
- ``build_report_rows`` / ``write_report_csv``: the sectioned report
  exported by the ``export`` command (header, monthly summary, balance,
  trend, notes).

Values are converted with the records' ``as_dict()`` so that amounts are
plain integers and percentages floats. Nothing here recomputes a figure.
"""

import csv
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .engine import BalanceSnapshot, MonthlySummary, SeriesPoint
from .ledger import TreasuryFilter

ReportRow = list[Union[str, int, float]]

# (section, field, indicator label)
_SUMMARY_LAYOUT: tuple[tuple[str, str, str], ...] = (
    ("sales", "sales_count", "Sales documents"),
    ("sales", "sales_total", "Sales total"),
    ("sales", "sales_net", "Net sales"),
    ("sales", "sales_tax", "Sales tax"),
    ("sales", "sales_discount", "Discounts"),
    ("sales", "credit_sales_total", "Credit sales"),
    ("sales", "card_commissions_total", "Card commissions"),
    ("sales", "cost_of_sales_total", "Cost of sales"),
    ("sales", "gross_profit", "Gross profit"),
    ("sales", "gross_margin_percent", "Gross margin (%)"),
    ("inflows", "immediate_cash_sales_total", "Sales collected at the point of sale"),
    ("inflows", "collections_total", "Credit collections"),
    ("inflows", "project_collections_total", "Project collections"),
    ("inflows", "treasury_inflows_total", "Treasury inflows"),
    ("inflows", "cash_inflows_total", "Total cash inflows"),
    ("outflows", "operational_expenses_total", "Operational expenses"),
    ("outflows", "project_outflows_total", "Project outflows"),
    ("outflows", "treasury_outflows_total", "Treasury outflows"),
    ("outflows", "cash_outflows_total", "Total cash outflows"),
    ("result", "net_cash_flow", "Net cash flow of the month"),
    ("result", "operating_result", "Operating result"),
    ("result", "operating_margin_percent", "Operating margin (%)"),
)

# (section, group, field, indicator label)
_BALANCE_LAYOUT: tuple[tuple[str, str, str, str], ...] = (
    ("assets", "assets", "cash_flow_month", "Cash (net flow of the month)"),
    ("assets", "assets", "customer_accounts_receivable", "Customer receivables"),
    ("assets", "assets", "project_accounts_receivable", "Project receivables"),
    ("assets", "assets", "accounts_receivable", "Total receivables"),
    ("assets", "assets", "inventory_at_cost", "Inventory at cost"),
    ("assets", "assets", "total", "Total assets"),
    ("liabilities", "liabilities", "accounts_payable", "Accounts payable"),
    ("liabilities", "liabilities", "total", "Total liabilities"),
    ("equity", "equity", "net_position", "Net position"),
    ("context", "context", "customers_with_debt", "Customers with debt"),
    (
        "context",
        "context",
        "projects_with_pending_collection",
        "Projects with pending collection",
    ),
    ("context", "context", "payables_pending_count", "Pending payables"),
    ("context", "context", "products_valued_count", "Products valued at cost"),
)

SERIES_COLUMNS = [
    "month",
    "label",
    "cash_inflows_total",
    "cash_outflows_total",
    "net_cash_flow",
    "operating_result",
]


def _numbered(rows: list[dict]) -> pd.DataFrame:
    # object dtype keeps integer amounts from being upcast next to percents
    df = pd.DataFrame(rows, columns=["section", "indicator", "value"], dtype=object)
    df.insert(0, "display_order", (df.index + 1) * 10)
    return df


def summary_to_dataframe(summary: MonthlySummary) -> pd.DataFrame:
    """Return the monthly summary as an indicator/value table."""
    values = summary.as_dict()
    return _numbered(
        [
            {"section": section, "indicator": label, "value": values[field]}
            for section, field, label in _SUMMARY_LAYOUT
        ]
    )


def balance_to_dataframe(balance: BalanceSnapshot) -> pd.DataFrame:
    """Return the balance snapshot as an indicator/value table."""
    values = balance.as_dict()
    return _numbered(
        [
            {"section": section, "indicator": label, "value": values[group][field]}
            for section, group, field, label in _BALANCE_LAYOUT
        ]
    )


def series_to_dataframe(points: Sequence[SeriesPoint]) -> pd.DataFrame:
    """Return the series as one row per month, in the order given."""
    return pd.DataFrame([p.as_dict() for p in points], columns=SERIES_COLUMNS)


def build_report_rows(
    organization_name: str,
    summary: MonthlySummary,
    balance: BalanceSnapshot,
    series: Sequence[SeriesPoint],
    treasury_filter: Optional[TreasuryFilter] = None,
) -> list[ReportRow]:
    """
    Build the rows of the sectioned CSV report.

    Empty lists stand for blank separator lines. The NOTES section is only
    present when the summary or the balance carry warnings.
    """
    tfilter = treasury_filter or TreasuryFilter()
    category = tfilter.category.value if tfilter.category else "ALL"
    source = tfilter.source.value if tfilter.source else "ALL"

    rows: list[ReportRow] = [
        ["SMB CASHFLOW - CASH-BASIS REPORT"],
        ["Organization", organization_name],
        ["Period", summary.label],
        ["Month", summary.month],
        ["Treasury category filter", category],
        ["Treasury source filter", source],
        [],
        ["MONTHLY SUMMARY"],
        ["Indicator", "Value"],
    ]
    summary_values = summary.as_dict()
    rows.extend(
        [label, summary_values[field]]
        for section, field, label in _SUMMARY_LAYOUT
        if section != "sales"
    )

    rows.extend([[], ["BALANCE"], ["Indicator", "Value"]])
    balance_values = balance.as_dict()
    rows.extend(
        [label, balance_values[group][field]]
        for section, group, field, label in _BALANCE_LAYOUT
        if section != "context"
    )

    rows.extend(
        [
            [],
            [f"TREND ({len(series)} months)"],
            ["Month", "Cash inflows", "Cash outflows", "Net cash flow", "Operating result"],
        ]
    )
    for point in series:
        values = point.as_dict()
        rows.append(
            [
                values["label"],
                values["cash_inflows_total"],
                values["cash_outflows_total"],
                values["net_cash_flow"],
                values["operating_result"],
            ]
        )

    notes = [*summary.warnings, *balance.warnings]
    if notes:
        rows.extend([[], ["NOTES"], ["Detail"]])
        rows.extend([note] for note in notes)

    return rows


def write_report_csv(
    path: Union[str, "os.PathLike[str]"], rows: Sequence[ReportRow]
) -> Path:
    """
    Write report rows as CSV: ';' separator, every cell quoted, UTF-8 with
    BOM so that spreadsheet tools detect the encoding.

    The parent directory is created if needed. Returns the written path.
    """
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8-sig", newline="") as fh:
        writer = csv.writer(
            fh, delimiter=";", quoting=csv.QUOTE_ALL, lineterminator="\n"
        )
        writer.writerows(rows)
    return out_path
