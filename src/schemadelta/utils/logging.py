"""Structured logging helpers for schemadelta."""

from __future__ import annotations

import logging
import os
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

SLOW_MS_ENV = "SCHEMADELTA_SLOW_MS"


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def configure_logging(level: int = logging.INFO) -> None:
    logger = logging.getLogger("schemadelta")
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(correlation_id)s | %(name)s | %(message)s"
    )
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())
    logger.addHandler(handler)
    logger.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(f"schemadelta.{name}")


def set_correlation_id(value: Optional[str] = None) -> str:
    token = value or str(uuid.uuid4())
    _correlation_id.set(token)
    return token


def get_correlation_id() -> str:
    cid = _correlation_id.get()
    if cid is None:
        cid = set_correlation_id()
    return cid


def resolve_slow_ms(*, default: int, override: int | None = None) -> int:
    """
    Pick the slow-stage threshold: explicit override, then environment, then default.
    """
    if override is not None:
        return override
    raw = os.getenv(SLOW_MS_ENV)
    if raw:
        try:
            return int(raw)
        except ValueError:
            logging.getLogger("schemadelta").warning(
                "Ignoring invalid %s value %r", SLOW_MS_ENV, raw
            )
    return default


@contextmanager
def time_call(name: str, logger: logging.Logger, *, threshold_ms: int = 100) -> Iterator[None]:
    """
    Log how long the block took; at or past ``threshold_ms`` the entry is a warning.
    """
    start = time.monotonic()
    try:
        yield
    finally:
        elapsed_ms = (time.monotonic() - start) * 1000
        level = logging.WARNING if elapsed_ms >= threshold_ms else logging.DEBUG
        logger.log(level, "%s took %.2fms", name, elapsed_ms, extra={"elapsed_ms": elapsed_ms})
