from __future__ import annotations
import json
import logging
import os
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional, Union

# Per-call-chain correlation ID
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="-")

_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # provide %(correlation_id)s to all formatters
        try:
            record.correlation_id = correlation_id_ctx.get()
        except Exception:
            record.correlation_id = "-"
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


_CONFIGURED = False


def _env_truthy(name: str, default: str = "true") -> bool:
    val = os.getenv(name, default)
    return str(val).strip().lower() in {"true", "1", "t", "yes", "y", "on"}


def _resolve_level(level: Union[int, str, None]) -> int:
    if isinstance(level, int):
        return level
    name = str(level or os.getenv("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def setup_logging(level: Union[int, str, None] = None) -> None:
    """
    Idempotent logging setup that ensures %(correlation_id)s is available in all log lines.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    filt = CorrelationIdFilter()
    root = logging.getLogger()
    root.addFilter(filt)

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler.addFilter(filt)
        root.addHandler(handler)
        root.setLevel(_resolve_level(level))
    else:
        for h in list(root.handlers):
            # Ensure formatter includes correlation_id
            fmt = getattr(h.formatter, "_fmt", "") if h.formatter else ""
            if "%(correlation_id)" not in fmt:
                h.setFormatter(logging.Formatter(_FORMAT))
            h.addFilter(filt)

    if _env_truthy("LOG_JSON", "false"):
        for h in root.handlers:
            h.setFormatter(JsonFormatter())

    # our own loggers propagate to root, but keep the filter on them too
    logging.getLogger("api").addFilter(filt)

    _CONFIGURED = True


def current_correlation_id() -> Optional[str]:
    cid = correlation_id_ctx.get()
    return None if cid == "-" else cid


@contextmanager
def correlation_scope(cid: Optional[str] = None) -> Iterator[str]:
    """
    Tag every log line (and outgoing request) inside the block with one id.
    A fresh uuid4 hex is generated when none is given.
    """
    cid = cid or uuid.uuid4().hex
    token = correlation_id_ctx.set(cid)
    try:
        yield cid
    finally:
        correlation_id_ctx.reset(token)
