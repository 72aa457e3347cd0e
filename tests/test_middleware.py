from types import SimpleNamespace

import pytest

from momskidz.observability.metrics import MetricsAggregator
from momskidz.observability.middleware import UNMATCHED_ROUTE, RequestContextMiddleware, route_key


def _scope(path: str) -> dict:
    return {"type": "http", "path": path, "method": "GET", "headers": []}


async def _receive() -> dict:
    return {"type": "http.request", "body": b"", "more_body": False}


class _Collector:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)


async def _ok_app(scope, receive, send) -> None:
    scope["route"] = SimpleNamespace(path=scope["path"])
    await send({"type": "http.response.start", "status": 204, "headers": []})
    await send({"type": "http.response.body", "body": b""})


async def test_successful_request_is_recorded_with_headers() -> None:
    metrics = MetricsAggregator()
    middleware = RequestContextMiddleware(_ok_app, metrics=metrics, excluded_paths={"/api/metrics"})
    send = _Collector()

    await middleware(_scope("/api/user"), _receive, send)

    stats = metrics.get("/api/user", 204)
    assert stats is not None and stats.count == 1
    headers = {k.decode().lower(): v.decode() for k, v in send.messages[0]["headers"]}
    assert headers["server-timing"].startswith("total;dur=")
    assert float(headers["server-timing"].split("=", 1)[1]) >= 0.0
    assert headers["x-request-id"]


async def test_downstream_exception_records_500_and_propagates() -> None:
    metrics = MetricsAggregator()
    error = RuntimeError("boom")

    async def failing_app(scope, receive, send) -> None:
        scope["route"] = SimpleNamespace(path="/api/activities")
        raise error

    middleware = RequestContextMiddleware(failing_app, metrics=metrics, excluded_paths=set())

    with pytest.raises(RuntimeError) as info:
        await middleware(_scope("/api/activities"), _receive, _Collector())

    assert info.value is error
    stats = metrics.get("/api/activities", 500)
    assert stats is not None and stats.count == 1
    assert stats.sum_seconds >= 0.0


async def test_exception_after_response_start_is_still_a_500() -> None:
    metrics = MetricsAggregator()

    async def half_app(scope, receive, send) -> None:
        scope["route"] = SimpleNamespace(path="/api/user")
        await send({"type": "http.response.start", "status": 200, "headers": []})
        raise ValueError("stream broke")

    middleware = RequestContextMiddleware(half_app, metrics=metrics, excluded_paths=set())

    with pytest.raises(ValueError):
        await middleware(_scope("/api/user"), _receive, _Collector())

    assert metrics.get("/api/user", 200) is None
    assert metrics.get("/api/user", 500).count == 1


async def test_excluded_paths_are_not_recorded() -> None:
    metrics = MetricsAggregator()
    middleware = RequestContextMiddleware(_ok_app, metrics=metrics, excluded_paths={"/api/metrics", "/api/health"})

    await middleware(_scope("/api/health"), _receive, _Collector())
    await middleware(_scope("/api/metrics"), _receive, _Collector())

    assert metrics.snapshot()["requests"] == []


async def test_non_http_scopes_pass_through() -> None:
    metrics = MetricsAggregator()
    seen: list[str] = []

    async def lifespan_app(scope, receive, send) -> None:
        seen.append(scope["type"])

    middleware = RequestContextMiddleware(lifespan_app, metrics=metrics, excluded_paths=set())
    await middleware({"type": "lifespan"}, _receive, _Collector())

    assert seen == ["lifespan"]
    assert metrics.http_requests_total == 0


async def test_app_responses_carry_request_id_and_server_timing(api_client) -> None:
    resp = await api_client.get("/auth/callback")
    assert resp.headers.get("x-request-id")
    assert resp.headers.get("server-timing", "").startswith("total;dur=")


def test_route_key_prefers_matched_template() -> None:
    scope = {"path": "/api/activities/42", "route": SimpleNamespace(path="/api/activities/{activity_id}")}
    assert route_key(scope) == "/api/activities/{activity_id}"
    assert route_key({"path": "/nowhere"}) == UNMATCHED_ROUTE


async def test_unrouted_request_uses_shared_bucket() -> None:
    metrics = MetricsAggregator()

    async def not_found_app(scope, receive, send) -> None:
        await send({"type": "http.response.start", "status": 404, "headers": []})
        await send({"type": "http.response.body", "body": b""})

    middleware = RequestContextMiddleware(not_found_app, metrics=metrics, excluded_paths=set())
    await middleware(_scope("/wp-login.php"), _receive, _Collector())

    assert metrics.get(UNMATCHED_ROUTE, 404).count == 1
    assert metrics.get("/wp-login.php", 404) is None


async def test_distinct_unknown_urls_collapse_into_one_bucket(api_client) -> None:
    for i in range(300):
        resp = await api_client.get(f"/no-such-route/{i}")
        assert resp.status_code == 404

    payload = (await api_client.get("/api/metrics")).json()
    assert [(row["path"], row["status_class"], row["count"]) for row in payload["requests"]] == [
        (UNMATCHED_ROUTE, "4xx", 300)
    ]


async def test_path_parameters_are_keyed_by_template(api_client) -> None:
    for i in range(3):
        await api_client.get(f"/api/activities/{i}")

    payload = (await api_client.get("/api/metrics")).json()
    paths = {row["path"] for row in payload["requests"]}
    assert paths == {"/api/activities/{activity_id}"}
