# webdav_gateway/monitoring/logger.py
"""
Structured JSON logging for the WebDAV gateway.

Service-level messages go through `log()` and the stdlib JsonFormatter;
protocol-level events use structlog (configured here with the same level).
Both pick up the request id from monitoring.context.
"""
import json
import logging
from datetime import datetime, timezone

import structlog

from webdav_gateway.config import settings

# LogRecord attributes that are not caller-supplied extras
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "component", "request_id", "operation"}
# Extras that must never reach a log line verbatim
_SECRET_KEYS = {"password", "authorization", "webdav_password", "auth"}


def get_request_context():
    # Import lazily to avoid import cycles
    from webdav_gateway.monitoring.context import get_request_context as _g
    return _g()


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


def _redact(key: str, value):
    return "***" if key.lower() in _SECRET_KEYS else value


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "component": getattr(record, "component", None) or record.module,
            "request_id": getattr(record, "request_id", None),
            "operation": getattr(record, "operation", None),
        }
        log_record.update(
            (key, _redact(key, value))
            for key, value in vars(record).items()
            if key not in _RESERVED and not key.startswith("_")
        )
        return json.dumps(log_record, default=str)


logger = logging.getLogger("webdav_gateway")
logger.setLevel(_level(settings.LOG_LEVEL))
handler = logging.StreamHandler()
handler.setFormatter(JsonFormatter())
logger.handlers = [handler]
logger.propagate = False

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(_level(settings.LOG_LEVEL)),
)


def log(level: str, message: str, component: str = None, request_id: str = None, operation: str = None, **kwargs):
    """Log message with request context; unknown keyword arguments become JSON fields."""
    # 'module' collides with the LogRecord attribute of the same name
    if "module" in kwargs and not component:
        component = kwargs.pop("module")
    ctx = get_request_context()
    if request_id is None:
        request_id = ctx.get("request_id")
    if operation is None:
        operation = ctx.get("operation")

    extra = {
        "request_id": request_id,
        "operation": operation,
        "component": component,
        **{k: v for k, v in kwargs.items() if k not in _RESERVED},
    }
    logger.log(_level(level), message, extra=extra)
