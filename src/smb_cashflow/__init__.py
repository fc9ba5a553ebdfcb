# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB Cashflow
------------

A Python-based cash-basis reconciliation engine for Small and Medium-sized
Businesses (SMBs). It reads the facts of a point-of-sale / project ledger
(sales documents, payments, treasury movements, expenses, payables) and
answers one question consistently: how much cash actually came in and went
out during a calendar month.

Main capabilities:
- exact document totals (discounts, tax, residual allocation) with Decimal,
- legal cash rounding per transaction and shift-close reconciliation,
- a monthly cash-basis summary that never counts a sale twice,
- an approximate balance snapshot (receivables, inventory, payables),
- a trailing-months trend series,
- a SQLite store fed from CSV exports, and an argparse CLI.

SMB Cashflow separates computation (engine), storage (ledger / SQLite),
configuration (TOML) and presentation (views / CLI).


Version: 0.1.0

Usage:
    python -m smb_cashflow.cli --help
"""

__all__ = ["engine", "ledger", "views", "io"]

__version__ = "0.1.0"
