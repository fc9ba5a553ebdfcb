# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB Cashflow.

This module is responsible for:
- loading the application configuration from a TOML file,
- validating business settings (timezone, cash rounding, series bounds),
- exposing typed dataclasses used by the rest of the application.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .db import DatabaseConfig
from .periods import DEFAULT_TIMEZONE, get_timezone

DEFAULT_CONFIG_FILE = "smb_cashflow_config.toml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
_LOG_FORMATS = ("console", "json")
_DISPLAY_MODES = ("table", "csv", "both")


@dataclass(frozen=True)
class SeriesConfig:
    """Bounds and default for the trailing-months series."""

    default_months: int = 6
    min_months: int = 3
    max_months: int = 24


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "console"


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB Cashflow.

    This aggregates:
    - the business settings (timezone, currency, cash rounding unit),
    - the database configuration (where ledger facts are stored),
    - the series window bounds,
    - the engine concurrency,
    - display and logging options.
    """

    timezone: str
    currency: str
    cash_rounding_unit: int
    database: DatabaseConfig
    series: SeriesConfig
    max_workers: int
    display_mode: str
    logging: LoggingConfig


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _int_setting(section: Mapping[str, Any], key: str, default: int, label: str) -> int:
    raw_value = section.get(key, default)
    if isinstance(raw_value, bool):
        raise ValueError(f"Invalid value for '{label}'. Expected an integer.")
    try:
        return int(raw_value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{label}' in the configuration. Expected an integer."
        ) from exc


def _choice_setting(
    section: Mapping[str, Any],
    key: str,
    default: str,
    choices: tuple[str, ...],
    label: str,
) -> str:
    value = str(section.get(key, default))
    if value not in choices:
        raise ValueError(
            f"Invalid value for '{label}': {value!r}. "
            f"Expected one of: {', '.join(choices)}."
        )
    return value


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB Cashflow application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [business]
        timezone (IANA name, default America/Santiago), currency (default
        CLP) and cash_rounding_unit (legal cash denomination, default 10).

    [database]
        engine ("sqlite") and path of the SQLite file.

    [series]
        default_months, min_months, max_months for the trend series.

    [engine]
        max_workers: size of the thread pool used to fan out ledger reads.

    [display]
        mode: "table", "csv" or "both".

    [logging]
        level (DEBUG/INFO/WARNING/ERROR) and format (console/json).

    All sections are optional. File paths are resolved relative to the
    directory of the TOML file itself.

    Parameters
    ----------
    config_path :
        Path to the TOML configuration file. Defaults to
        'smb_cashflow_config.toml' in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Business settings
    business = _section(raw, "business")
    timezone_name = str(business.get("timezone") or DEFAULT_TIMEZONE)
    get_timezone(timezone_name)  # fail fast on unknown zones
    currency = str(business.get("currency") or "CLP")
    cash_rounding_unit = _int_setting(
        business, "cash_rounding_unit", 10, "business.cash_rounding_unit"
    )
    if cash_rounding_unit < 1:
        raise ValueError("'business.cash_rounding_unit' must be a positive integer.")

    # 2) Database
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/smb_cashflow.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()
    database_config = DatabaseConfig(engine=db_engine, path=db_path)

    # 3) Series bounds
    series_section = _section(raw, "series")
    series = SeriesConfig(
        default_months=_int_setting(
            series_section, "default_months", 6, "series.default_months"
        ),
        min_months=_int_setting(series_section, "min_months", 3, "series.min_months"),
        max_months=_int_setting(
            series_section, "max_months", 24, "series.max_months"
        ),
    )
    if not 1 <= series.min_months <= series.default_months <= series.max_months:
        raise ValueError(
            "Invalid [series] bounds: expected "
            "1 <= min_months <= default_months <= max_months."
        )

    # 4) Engine
    engine_section = _section(raw, "engine")
    max_workers = _int_setting(engine_section, "max_workers", 9, "engine.max_workers")
    if max_workers < 1:
        raise ValueError("'engine.max_workers' must be a positive integer.")

    # 5) Display and logging
    display_mode = _choice_setting(
        _section(raw, "display"), "mode", "table", _DISPLAY_MODES, "display.mode"
    )
    logging_section = _section(raw, "logging")
    logging_config = LoggingConfig(
        level=_choice_setting(
            logging_section, "level", "INFO", _LOG_LEVELS, "logging.level"
        ),
        format=_choice_setting(
            logging_section, "format", "console", _LOG_FORMATS, "logging.format"
        ),
    )

    return AppConfig(
        timezone=timezone_name,
        currency=currency,
        cash_rounding_unit=cash_rounding_unit,
        database=database_config,
        series=series,
        max_workers=max_workers,
        display_mode=display_mode,
        logging=logging_config,
    )
