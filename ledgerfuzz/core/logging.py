"""Structured JSON logging configuration.

Provides:
  - JSON-formatted log output for staging/production runs
  - Human-readable colored output for development
  - Automatic lifting of harness context (rule, partition, contract, stage)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

CONTEXT_FIELDS = (
    "rule_id",
    "partition",
    "contract",
    "stage",
    "map_id",
    "cursor",
    "duration_ms",
    "seed",
)


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_entry["module"] = record.module
            log_entry["function"] = record.funcName
            log_entry["line"] = record.lineno

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else "Unknown",
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        return json.dumps(log_entry, default=str)


class DevFormatter(logging.Formatter):
    """Colored human-readable formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        prefix = f"{color}{ts} [{record.levelname:>8s}]{self.RESET}"
        msg = record.getMessage()

        rule_id = getattr(record, "rule_id", None)
        if rule_id:
            msg = f"[{rule_id}] {msg}"
        contract = getattr(record, "contract", None)
        if contract:
            msg = f"[{contract}] {msg}"

        base = f"{prefix} {record.name}: {msg}"
        if record.exc_info and record.exc_info[1]:
            base += "\n" + self.formatException(record.exc_info)
        return base


def setup_logging(env: str = "development", log_level: str = "INFO", seed: int | None = None) -> None:
    """Configure logging for the harness.

    Args:
        env: Application environment (development/staging/production)
        log_level: Minimum log level
        seed: Campaign seed stamped on every record, so a JSON log line can
            be replayed with the same random choices
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if env in ("staging", "production"):
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(DevFormatter())

    if seed is not None:
        handler.addFilter(CampaignLogFilter(seed))

    root.addHandler(handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)


class CampaignLogFilter(logging.Filter):
    """Stamp the campaign seed on records that do not carry one."""

    def __init__(self, seed: int) -> None:
        super().__init__()
        self.seed = seed

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "seed"):
            record.seed = self.seed  # type: ignore[attr-defined]
        return True
