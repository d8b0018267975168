# memdav/monitoring/logger.py
"""
Structured JSON logger for memdav.
"""
import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from wsgidav import util as wsgidav_util

from memdav.monitoring.context import current_request


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "component": getattr(record, "component", None) or record.module,
            "request_id": getattr(record, "request_id", None),
            "remote_addr": getattr(record, "remote_addr", None),
            "method": getattr(record, "method", None),
        }
        fields: Optional[Dict[str, Any]] = getattr(record, "fields", None)
        if fields:
            log_record.update({k: str(v) if not isinstance(v, (int, float, bool)) else v
                               for k, v in fields.items() if v is not None})
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record)

logger = logging.getLogger("memdav")
logger.setLevel(logging.INFO)
handler = logging.StreamHandler()
handler.setFormatter(JsonFormatter())
logger.handlers = [handler]
logger.propagate = False


def configure_logging(level: str = "INFO") -> None:
    """
    Set the log level for the stdlib logger and the structlog pipeline.

    WsgiDAV's own logger writes through the same JSON handler; its
    per-request chatter stays below WARNING.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)
    dav_logger = logging.getLogger(wsgidav_util.BASE_LOGGER_NAME)
    dav_logger.handlers = [handler]
    dav_logger.propagate = False
    dav_logger.setLevel(max(numeric_level, logging.WARNING))
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )


# Helper to log with context
def log(level: str, message: str, component: str = None, request_id: str = None, exc_info: bool = False, **kwargs):
    ctx = current_request()
    if request_id is None:
        request_id = ctx.request_id

    extra = {
        "request_id": request_id,
        "remote_addr": ctx.remote_addr,
        "method": ctx.method,
        "component": component,
        "fields": kwargs,
    }
    logger.log(getattr(logging, level.upper(), logging.INFO), message, extra=extra, exc_info=exc_info)
