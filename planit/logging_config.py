"""
Logging setup for planit.

Console output goes to stdout, as JSON lines when JSON_LOGS is set (for log
shippers) or as short text lines otherwise. A size-rotated planit.log under
the logs directory always keeps the full-timestamp text format.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LOG_FILE = "planit.log"
_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 5

# Chatty at INFO; their warnings still come through
_QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "telegram",
    "apscheduler",
    "googleapiclient",
    "aiohttp.access",
)

# Attributes every LogRecord has; anything else was passed via `extra=`
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, including any `extra=` fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in entry:
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(log_level: str, logs_dir: str, json_logs: bool = False) -> None:
    """Configure the root logger. Safe to call more than once."""
    os.makedirs(logs_dir, exist_ok=True)
    level = getattr(logging, log_level.upper(), logging.INFO)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(
        JsonFormatter() if json_logs else logging.Formatter(_TEXT_FORMAT, datefmt="%H:%M:%S")
    )

    file_handler = logging.handlers.RotatingFileHandler(
        os.path.join(logs_dir, _LOG_FILE),
        maxBytes=_LOG_FILE_MAX_BYTES,
        backupCount=_LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    for handler in (console, file_handler):
        handler.setLevel(level)
    logging.basicConfig(level=level, handlers=[console, file_handler], force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
