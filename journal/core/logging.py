"""One-line JSON logs tagged with the service and the request being served."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Mapping

from ..middlewares.request_id import principal_ctx_var, request_id_ctx_var
from .config import settings

# uvicorn's own access lines duplicate journal.http's "http.request".
QUIETED_LOGGERS = ("uvicorn.access",)


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "service": settings.APP_NAME,
            "env": settings.APP_ENV,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, ctx_var in (("request_id", request_id_ctx_var), ("principal", principal_ctx_var)):
            value = ctx_var.get()
            if value:
                payload[key] = value
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            payload.update(extra)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel(level.upper())
    for name in QUIETED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
