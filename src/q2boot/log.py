"""Process-wide logging setup"""

from __future__ import annotations

import logging
import sys

import structlog
from rich.console import Console
from rich.logging import RichHandler

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

LOG_FORMATS = ("text", "json")

# Applied to records from plain `logging` loggers before rendering
_PRE_CHAIN = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.format_exc_info,
]


def _json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=_PRE_CHAIN,
        )
    )
    return handler


def setup_logging(level: str = "info", fmt: str = "text") -> None:
    """Configure the root logger to write to stderr

    Args:
        level: One of debug, info, warn, error; unknown values mean info
        fmt: "text" for rich console output, "json" for one JSON object per line
    """
    if fmt == "json":
        handler = _json_handler()
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logging.basicConfig(
        level=LOG_LEVELS.get(level, logging.INFO),
        handlers=[handler],
        force=True,
    )
