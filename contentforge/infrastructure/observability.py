"""Structured Logging — one JSON object per line, with request/domain correlation fields.

Invariants:
    - Every record carries timestamp (UTC, from the record itself), level,
      logger and message
    - Correlation fields (user_id, project_id, error_code, ...) appear only
      when a call site passes them via extra=
    - UUIDs, enums and datetimes are rendered as strings, never repr()

Design Decisions:
    - stdlib logging + a small formatter over a logging framework: services only
      ever call logging.getLogger(__name__)
    - setup_logging is idempotent: it swaps its own named handler on the root
      logger, so tests and reloads never double-print
    - SQLAlchemy engine chatter is pinned to WARNING unless DEBUG is requested
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum

CORRELATION_FIELDS = (
    "user_id", "project_id", "template_id", "action_type", "export_format",
    "error_code", "attempt", "path",
)

_HANDLER_NAME = "contentforge"
_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _jsonable(value):
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, _jsonable(record.__dict__[name]))
            for name in CORRELATION_FIELDS
            if record.__dict__.get(name) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        JSONFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT),
    )
    root.addHandler(handler)

    resolved = logging.getLevelName(level.upper())
    root.setLevel(resolved if isinstance(resolved, int) else logging.INFO)
    if root.level > logging.DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
