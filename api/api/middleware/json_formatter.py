"""Single-line JSON log formatter.

Activate by setting ``API_STRUCTURED_LOGGING=true``; the lifespan hook then
replaces the root handlers with one ``StreamHandler`` using this formatter.

Output schema per line::

    {
        "timestamp": "2026-05-15T12:34:56.789012+00:00",
        "level": "INFO",
        "logger": "api.access",
        "message": "request completed",
        "correlation_id": "...",   // lifted from the access-log payload
        "user_id": "...",          // lifted from the access-log payload
        "request": { ... },        // present when emitted by RequestLoggingMiddleware
        "exc_info": "Traceback ..."  // present only on exceptions
    }
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any

# Access-log fields promoted to the top level so aggregators can index them
# without descending into ``request``.
_PROMOTED_FIELDS: tuple[str, ...] = ("correlation_id", "user_id")


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def __init__(self, service: str = "aeromatch-api") -> None:
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "service": self._service,
            "message": record.getMessage(),
        }

        request_data = getattr(record, "request", None)
        if isinstance(request_data, dict):
            for field in _PROMOTED_FIELDS:
                if request_data.get(field):
                    payload[field] = request_data[field]
        if request_data is not None:
            payload["request"] = request_data

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)
