from __future__ import annotations

from time import perf_counter
from typing import Callable, TypeVar

import structlog

from momskidz.observability.metrics import get_metrics


T = TypeVar("T")


def instrument_backend_call(*, operation: str, fn: Callable[[], T]) -> T:
    """Time a call to the hosted backend, update metrics, and emit a structured log event."""

    log = structlog.get_logger("backend")
    start = perf_counter()
    try:
        result = fn()
    except Exception:
        elapsed = perf_counter() - start
        get_metrics().observe_backend_call(elapsed)
        log.exception(
            "backend_call_failed",
            operation=operation,
            elapsed_ms=round(elapsed * 1000.0, 2),
        )
        raise

    elapsed = perf_counter() - start
    get_metrics().observe_backend_call(elapsed)
    log.info(
        "backend_call",
        operation=operation,
        elapsed_ms=round(elapsed * 1000.0, 2),
    )
    return result
