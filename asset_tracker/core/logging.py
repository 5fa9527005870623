"""One-JSON-object-per-line logging.

Services log short event names (``asset.transition``, ``holding.imported``)
and pass structured fields through ``extra={"extra_data": {...}}``. The
formatter adds the request id and principal of the request being served.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from ..middlewares import principal_ctx_var, request_id_ctx_var

_RESERVED = frozenset({"ts", "level", "logger", "event", "request_id", "principal", "exception"})

# The request middleware already logs one line per request.
_QUIET_LOGGERS = ("uvicorn.access",)


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        request_id = request_id_ctx_var.get()
        if request_id:
            entry["request_id"] = request_id
        principal = principal_ctx_var.get()
        if principal:
            entry["principal"] = principal
        fields = getattr(record, "extra_data", None)
        if isinstance(fields, Mapping):
            for key, value in fields.items():
                entry[f"data_{key}" if key in _RESERVED else key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, separators=(",", ":"), default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel(level.upper())
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
