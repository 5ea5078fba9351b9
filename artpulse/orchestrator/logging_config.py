"""
ArtPulse logging setup.

Pipeline stages log through module loggers and tag records with run
context via `extra`:

    logger.info("Scored topic", extra={"run_id": run_id, "stage": "scoring", "topic": slug})

Those context keys become top-level fields when LOG_JSON is on, so a run can
be followed across stages by filtering on run_id. Plain-text output is the
default for local runs and the CLI.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from ..data.config import LoggingConfig

# Record attributes promoted to JSON fields when present
CONTEXT_KEYS = ("run_id", "stage", "owner_id", "topic", "score", "duration")

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"

QUIET_LOGGERS = ("urllib3", "httpx", "anthropic", "openai", "apscheduler")


class JSONFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg, run context."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key))
            for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _rotating_handler(path: str, max_bytes: int, backup_count: int) -> logging.Handler:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return logging.handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
):
    """
    Route all pipeline logging to stdout, and optionally a rotating file.

    Replaces any handlers already on the root logger, so calling it twice
    (CLI then scheduler) does not duplicate output.
    """
    formatter = JSONFormatter() if json_output else logging.Formatter(TEXT_FORMAT, TEXT_DATEFMT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(_rotating_handler(log_file, max_bytes, backup_count))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug("Logging ready (level=%s, json=%s, file=%s)", level, json_output, log_file or "-")


def setup_logging_from_config(config: LoggingConfig) -> None:
    setup_logging(level=config.level, json_output=config.json_logs, log_file=config.log_file)
