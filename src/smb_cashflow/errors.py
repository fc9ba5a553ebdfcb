# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Error types for SMB Cashflow.

Every error raised on purpose by the package derives from ``CashflowError``
(itself a ``ValueError``) and carries a stable ``code`` that outer layers
(CLI, HTTP handlers) can map to a user-facing message or status.
"""


class CashflowError(ValueError):
    """Base class for all expected SMB Cashflow errors."""

    code = "CASHFLOW_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class InvalidPeriodError(CashflowError):
    """Malformed month key or invalid trailing window size."""

    code = "INVALID_PERIOD"


class OrganizationNotFoundError(CashflowError):
    """The requested organization does not exist in the ledger."""

    code = "ORGANIZATION_NOT_FOUND"


class InvalidDiscountError(CashflowError):
    """A global discount is negative or exceeds the gross amount of the lines."""

    code = "INVALID_DISCOUNT"


class InsufficientCashError(CashflowError):
    """Cash handed over is below the legally rounded total."""

    code = "INSUFFICIENT_CASH"


class LedgerReadError(CashflowError):
    """A read against the ledger failed; the whole computation is aborted."""

    code = "LEDGER_UNAVAILABLE"
