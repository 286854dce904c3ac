from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import sys
from typing import Any, TextIO

from message_chunker.redaction import redact_text


_EXTRA_FIELDS = (
    "trace_id",
    "chat_id",
    "event",
    "status",
    "chunk_index",
    "chunk_count",
    "chunk_length",
    "attempt",
)


class RedactingFilter(logging.Filter):
    """Scrub bot tokens from the rendered message before any handler sees it."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            rendered = record.getMessage()
        except (TypeError, ValueError):
            # Mismatched %-args: leave the record for the formatter to report.
            return True
        record.msg = redact_text(rendered)
        record.args = ()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field_name in _EXTRA_FIELDS:
            value = getattr(record, field_name, None)
            if value is not None:
                payload[field_name] = value
        if record.exc_info:
            payload["exception"] = redact_text(self.formatException(record.exc_info))
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RedactingFilter())
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
