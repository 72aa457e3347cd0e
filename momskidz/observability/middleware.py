from __future__ import annotations

import uuid
from collections.abc import Iterable
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders

from momskidz.config import get_settings
from momskidz.observability.metrics import MetricsAggregator, get_metrics


UNMATCHED_ROUTE = "<unmatched>"


def route_key(scope: dict[str, Any]) -> str:
    """Route template the router matched (e.g. `/api/activities/{activity_id}`), or one shared key."""

    route = scope.get("route")
    template = getattr(route, "path", None)
    if isinstance(template, str) and template:
        return template
    return UNMATCHED_ROUTE


class RequestContextMiddleware:
    """Adds request_id context, Server-Timing, access logs, and per-route HTTP metrics."""

    def __init__(
        self,
        app: Callable[..., Any],
        metrics: MetricsAggregator | None = None,
        excluded_paths: Iterable[str] | None = None,
    ) -> None:
        self.app = app
        self._metrics = metrics
        if excluded_paths is None:
            excluded_paths = get_settings().excluded_metric_paths
        # The metrics and health endpoints must not observe themselves.
        self._excluded_metric_paths = set(excluded_paths)

    @property
    def metrics(self) -> MetricsAggregator:
        return self._metrics if self._metrics is not None else get_metrics()

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        path = scope.get("path", "")
        method = scope.get("method")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id
                headers["Server-Timing"] = f"total;dur={perf_counter() - start:.6f}"

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            # A failure after the response started still counts as a server error.
            status_code = 500
            raise
        finally:
            elapsed = perf_counter() - start

            # Update metrics first so they update even if logging misbehaves.
            if path not in self._excluded_metric_paths:
                self.metrics.record(route_key(scope), status_code, elapsed)

            structlog.get_logger("access").info(
                "http_request",
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000.0, 2),
            )

            structlog.contextvars.clear_contextvars()
