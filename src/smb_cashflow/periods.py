# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB Cashflow.

This module defines the MonthPeriod value object and helpers to derive
calendar months in the business timezone:

- a month given as a "YYYY-MM" key,
- the current month for an injected "now",
- a trailing window of N months ending at "now".

Month boundaries are always computed in the business timezone (by default
America/Santiago), never in UTC or server-local time. Both bounds are
inclusive: ``start`` is the first instant of the month and ``end`` the last
microsecond before the next month begins.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidPeriodError

DEFAULT_TIMEZONE = "America/Santiago"

_MONTH_KEY_RE = re.compile(r"(\d{4})-(0[1-9]|1[0-2])", re.ASCII)

_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass(frozen=True)
class MonthPeriod:
    """A calendar month in the business timezone, with a display label."""

    key: str
    label: str
    start: datetime
    end: datetime


def get_timezone(name: str) -> ZoneInfo:
    """
    Return the ZoneInfo for a timezone name.

    Raises:
        ValueError: if the timezone is unknown.
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {name!r}") from exc


def parse_month_key(key: str) -> tuple[int, int]:
    """
    Parse a "YYYY-MM" month key into (year, month).

    Raises:
        InvalidPeriodError: if the key is malformed.
    """
    match = _MONTH_KEY_RE.fullmatch(key) if isinstance(key, str) else None
    if match is None:
        raise InvalidPeriodError(f"Invalid month {key!r}, expected YYYY-MM format.")
    return int(match.group(1)), int(match.group(2))


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _build_period(year: int, month: int, tz: ZoneInfo) -> MonthPeriod:
    start = datetime(year, month, 1, tzinfo=tz)
    next_year, next_month = _shift_month(year, month, 1)
    end = datetime(next_year, next_month, 1, tzinfo=tz) - timedelta(microseconds=1)
    return MonthPeriod(
        key=f"{year:04d}-{month:02d}",
        label=f"{_MONTH_NAMES[month - 1]} {year}",
        start=start,
        end=end,
    )


def month_period(key: str, tz: ZoneInfo) -> MonthPeriod:
    """Month identified by a "YYYY-MM" key, in the given timezone."""
    year, month = parse_month_key(key)
    try:
        return _build_period(year, month, tz)
    except (ValueError, OverflowError) as exc:
        raise InvalidPeriodError(
            f"Month {key!r} is out of the supported range."
        ) from exc


def current_month_period(now: datetime, tz: ZoneInfo) -> MonthPeriod:
    """
    Month containing ``now`` once converted to the business timezone.

    ``now`` must be timezone-aware.
    """
    if now.tzinfo is None:
        raise ValueError("'now' must be a timezone-aware datetime.")
    local = now.astimezone(tz)
    return _build_period(local.year, local.month, tz)


def resolve_month(month: Optional[str], now: datetime, tz: ZoneInfo) -> MonthPeriod:
    """Explicit month if given, otherwise the current month."""
    if month is None:
        return current_month_period(now, tz)
    return month_period(month, tz)


def trailing_month_periods(count: int, now: datetime, tz: ZoneInfo) -> list[MonthPeriod]:
    """
    Return ``count`` consecutive months ending with the current month,
    ordered from oldest to newest.

    Raises:
        InvalidPeriodError: if ``count`` is not a positive integer.
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidPeriodError(
            f"Series window must be a positive number of months, got {count!r}."
        )

    current = current_month_period(now, tz)
    year, month = parse_month_key(current.key)

    periods: list[MonthPeriod] = []
    for offset in range(count - 1, -1, -1):
        y, m = _shift_month(year, month, -offset)
        periods.append(_build_period(y, m, tz))
    return periods
