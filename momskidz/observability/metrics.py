from __future__ import annotations

import math
from collections.abc import MutableMapping
from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any

import structlog

from momskidz.config import get_settings


logger = structlog.get_logger("metrics")

MetricsKey = tuple[str, str]


def status_class(status_code: int) -> str:
    """Hundreds-digit grouping of an HTTP status code, e.g. ``204 -> "2xx"``."""

    return f"{int(status_code) // 100}xx"


def _coerce_status(status_code: Any) -> int | None:
    try:
        code = int(status_code)
    except (TypeError, ValueError):
        return None
    if code < 100 or code > 599:
        return None
    return code


def _coerce_duration(duration_seconds: Any) -> float:
    try:
        value = float(duration_seconds)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


@dataclass
class RequestStats:
    count: int = 0
    sum_seconds: float = 0.0
    max_seconds: float = 0.0

    def observe(self, elapsed_seconds: float) -> None:
        self.count += 1
        self.sum_seconds += elapsed_seconds
        if elapsed_seconds > self.max_seconds:
            self.max_seconds = elapsed_seconds

    @property
    def avg_seconds(self) -> float:
        return self.sum_seconds / self.count if self.count else 0.0


class MetricsAggregator:
    """Thread-safe, process-local request metrics (resets on restart).

    Buckets are keyed by ``(path, status class)`` and kept in ``store``, any
    mutable mapping. Observations for ``metrics_path`` are ignored so that
    scraping the metrics does not change them.
    """

    def __init__(
        self,
        store: MutableMapping[MetricsKey, RequestStats] | None = None,
        metrics_path: str = "/api/metrics",
    ) -> None:
        self._lock = Lock()
        self._store: MutableMapping[MetricsKey, RequestStats] = store if store is not None else {}
        self.metrics_path = metrics_path
        self.http_requests_total: int = 0
        self.auth_events: dict[str, int] = {}
        self.backend_calls_total: int = 0
        self.backend_call_seconds = RequestStats()

    def record(self, path: str, status_code: int, duration_seconds: float) -> None:
        if path == self.metrics_path:
            return

        code = _coerce_status(status_code)
        if code is None:
            logger.debug("metrics_observation_dropped", path=path, status_code=status_code)
            return

        elapsed = _coerce_duration(duration_seconds)
        key = (str(path), status_class(code))
        with self._lock:
            stats = self._store.get(key)
            if stats is None:
                stats = RequestStats()
            stats.observe(elapsed)
            # Reassign so stores with copy-on-read semantics see the update.
            self._store[key] = stats
            self.http_requests_total += 1

    def get(self, path: str, status_code: int) -> RequestStats | None:
        with self._lock:
            return self._store.get((path, status_class(status_code)))

    def observe_auth(self, outcome: str) -> None:
        with self._lock:
            self.auth_events[outcome] = self.auth_events.get(outcome, 0) + 1

    def observe_backend_call(self, elapsed_seconds: float) -> None:
        with self._lock:
            self.backend_calls_total += 1
            self.backend_call_seconds.observe(_coerce_duration(elapsed_seconds))

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            requests = [
                {
                    "path": path,
                    "status_class": klass,
                    "count": stats.count,
                    "sum_seconds": stats.sum_seconds,
                    "avg_seconds": stats.avg_seconds,
                    "max_seconds": stats.max_seconds,
                }
                for (path, klass), stats in sorted(self._store.items())
            ]
            return {
                "counters": {
                    "http_requests_total": self.http_requests_total,
                    "backend_calls_total": self.backend_calls_total,
                    "auth_events": dict(self.auth_events),
                },
                "requests": requests,
                "latency_seconds": {
                    "backend_call": asdict(self.backend_call_seconds),
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._store.clear()
            self.http_requests_total = 0
            self.auth_events = {}
            self.backend_calls_total = 0
            self.backend_call_seconds = RequestStats()


_METRICS: MetricsAggregator | None = None


def get_metrics() -> MetricsAggregator:
    global _METRICS
    if _METRICS is None:
        _METRICS = MetricsAggregator(metrics_path=get_settings().metrics_path)
    return _METRICS


def reset_metrics() -> None:
    """Reset metrics counters/aggregates (used by tests)."""

    get_metrics().reset()
