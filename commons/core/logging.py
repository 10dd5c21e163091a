"""
core/logging.py

One JSON object per log line, tagged with the current request id.

The error dispatcher logs every error it renders ("Error is: ...") with the
status it chose, so a 500 seen by a client can be matched to the real error
through requestId and statusCode.

Non-developer summary:
----------------------
Logs come out as one structured line per event, so they can be searched and
filtered. Each line says which request it belongs to, which lets support
staff follow one failing call from start to finish.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from types import TracebackType
from typing import Any, Dict, Optional, Tuple, Type

# Set by RequestIdMiddleware for the lifetime of one request.
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

LOGGER_NAMESPACE = "commons"

# Record attributes (passed via `extra=`) copied into the JSON line.
EXTRA_FIELDS = ("uploadKey", "fileName", "statusCode", "errorKind")

_ExcInfo = Tuple[Optional[Type[BaseException]], Optional[BaseException], Optional[TracebackType]]


def _exc_summary(exc_info: _ExcInfo) -> Dict[str, Optional[str]]:
    exc_type, exc, _ = exc_info
    return {
        "type": exc_type.__name__ if exc_type else None,
        "message": str(exc) if exc is not None else None,
    }


class RequestIdFilter(logging.Filter):
    """Copies the active request id onto each record as `requestId`."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "requestId"):
            record.requestId = request_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    def __init__(self, service: str, stage: str):
        super().__init__()
        self.service = service
        self.stage = stage

    def format(self, record: logging.LogRecord) -> str:
        line: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "service": self.service,
            "stage": self.stage,
        }

        rid = getattr(record, "requestId", None) or request_id_var.get()
        if rid:
            line["requestId"] = rid

        line.update({k: getattr(record, k) for k in EXTRA_FIELDS if hasattr(record, k)})

        if record.exc_info:
            line["exc"] = _exc_summary(record.exc_info)

        # default=str: extras may carry enums or paths
        return json.dumps(line, separators=(",", ":"), ensure_ascii=False, default=str)


def _replace_handlers(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.setLevel(level)
    logger.addHandler(handler)


def configure_logging(level_str: str = "INFO") -> None:
    """
    Route root, uvicorn and toolkit logs through a single JSON stdout handler.

    Host apps call this once at startup, typically with get_settings().LOG_LEVEL.
    """
    from .config import get_settings

    level = getattr(logging, (level_str or "INFO").upper(), logging.INFO)
    s = get_settings()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter(service=s.APP_NAME, stage=s.APP_STAGE))
    handler.addFilter(RequestIdFilter())

    _replace_handlers(logging.getLogger(), handler, level)

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uv = logging.getLogger(name)
        _replace_handlers(uv, handler, level)
        uv.propagate = False

    # Toolkit modules log under "commons.*" and reach the root handler.
    logging.getLogger(LOGGER_NAMESPACE).setLevel(level)
