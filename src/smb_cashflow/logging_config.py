# SMB Cashflow - Cash-basis reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Structured logging for SMB Cashflow.

Events are emitted with structlog on top of the standard ``logging``
module and always written to stderr: stdout is reserved for the tables and
CSV produced by the command-line tool.

Two output formats are available:

- ``console``: one human-readable line per event, without colors,
- ``json``: one JSON object per line, for log collectors.
"""

import logging
import sys
from typing import Literal

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _renderer_chain(fmt: LogFormat) -> list[structlog.types.Processor]:
    if fmt == "json":
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=False)]


def configure_logging(level: LogLevel = "INFO", fmt: LogFormat = "console") -> None:
    """
    Configure structured logging for the application.

    Can be called several times; the last call wins.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        fmt: Output format (json or console).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *_renderer_chain(fmt),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a logger bound to ``name`` (typically ``__name__``)."""
    return structlog.get_logger(name)
