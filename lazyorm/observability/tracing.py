"""Tracing helpers for statement execution and remote fetches."""
from __future__ import annotations

import contextlib
import time
from typing import Iterator, Optional

import structlog


def _logger():
    return structlog.get_logger("lazyorm.trace")


@contextlib.contextmanager
def span(*, name: str, table: Optional[str] = None) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        _logger().debug("trace_span", span=name, table=table, elapsed_ms=elapsed_ms)


def log_fetch_result(*, url: str, status: int, bytes_read: int, elapsed_ms: int) -> None:
    _logger().info(
        "fetch_result",
        url=url,
        status=status,
        bytes=bytes_read,
        elapsed_ms=elapsed_ms,
    )


def log_fetch_failure(*, url: str, reason: str) -> None:
    _logger().warning("fetch_failed", url=url, reason=reason)
