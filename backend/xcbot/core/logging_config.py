"""Logging setup for the bot.

Plain text by default; one JSON object per line when LOG_JSON is set (for log shippers).

Usage:
    from xcbot.core.logging_config import configure_logging
    configure_logging(level="INFO", json_format=False)
"""
from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter.

    {"ts": "2026-02-17T18:04:12.934Z", "level": "INFO", "logger": "xcbot.scheduler.xcontest_job",
     "msg": "XContest tick done: 20 entries, 1 new", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
                  + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.levelno >= logging.WARNING:
            entry["file"] = f"{record.filename}:{record.lineno}"

        if record.exc_info and record.exc_info[1]:
            entry["error"] = str(record.exc_info[1])
            entry["error_type"] = type(record.exc_info[1]).__name__

        # Contextual fields passed via extra=
        for key in ("sender", "message_id", "user_id", "flight_url", "pilot"):
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val

        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure the root logger. Replaces existing root handlers."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-5s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    root.addHandler(handler)

    # Silence noisy third-party loggers
    for noisy in ("httpcore", "httpx", "apscheduler.executors.default", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
