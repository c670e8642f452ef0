"""Root logger setup with JSON and text formatters."""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone

from careplan.services.request_context import get_request_id, short_request_id

# Keys every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}

# Personal health metrics never reach the log stream, even as extras.
REDACTED_FIELDS: frozenset[str] = frozenset(
    {"age", "bmi", "blood_pressure", "cholesterol", "smoking", "physical_activity"}
)
REDACTED = "[redacted]"


class _BaseFormatter(logging.Formatter):
    def _utc(self, record: logging.LogRecord) -> datetime:
        return datetime.fromtimestamp(record.created, tz=timezone.utc)

    def _exception_text(self, record: logging.LogRecord) -> str | None:
        if record.exc_info and record.exc_info[0] is not None:
            return "".join(traceback.format_exception(*record.exc_info))
        return None


class JSONFormatter(_BaseFormatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        entry: dict = {
            "timestamp": self._utc(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        if request_id := get_request_id():
            entry["request_id"] = request_id

        entry.update(
            (key, REDACTED if key in REDACTED_FIELDS else value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )

        if exception := self._exception_text(record):
            entry["exception"] = exception

        return json.dumps(entry, default=str)


class TextFormatter(_BaseFormatter):
    """``<utc time> <LEVEL> [<request id>] <logger> - <message>``"""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        parts = [self._utc(record).strftime("%Y-%m-%d %H:%M:%S"), f"{record.levelname:<8}"]
        if rid := short_request_id():
            parts.append(f"[{rid}]")
        parts += [record.name, "-", record.message]

        line = " ".join(parts)
        if exception := self._exception_text(record):
            line += "\n" + exception
        return line


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """Configure the root logger. Call once at startup."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Uvicorn reload re-runs startup; avoid stacking handlers.
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if log_format.lower() == "json" else TextFormatter())
    root.addHandler(handler)

    # careplan.access already writes one line per request.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
