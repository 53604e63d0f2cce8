import json
import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ocr_relay.config import Settings, settings

# attributes every LogRecord carries; anything else arrived through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def record_fields(record: logging.LogRecord) -> dict:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_") and value is not None
    }


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            **record_fields(record),
        }
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


def configure_logging(source: Settings | None = None) -> None:
    config = source or settings
    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter() if config.log_json else logging.Formatter(PLAIN_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))


access_logger = logging.getLogger("ocr_relay.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one access record per request and echoes ``x-request-id``."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        fields = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            access_logger.exception("request_failed", extra={**fields, "status_code": 500})
            raise

        fields["status_code"] = response.status_code
        fields["latency_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        access_logger.info("request_complete", extra=fields)
        response.headers["x-request-id"] = request_id
        return response
