from concurrent.futures import ThreadPoolExecutor

import pytest

from momskidz.observability.metrics import MetricsAggregator, RequestStats, status_class


def test_status_class_groups_by_hundreds() -> None:
    assert status_class(200) == "2xx"
    assert status_class(204) == "2xx"
    assert status_class(302) == "3xx"
    assert status_class(404) == "4xx"
    assert status_class(599) == "5xx"


def test_record_increments_count_and_duration() -> None:
    metrics = MetricsAggregator()
    metrics.record("/api/activities", 200, 0.25)
    metrics.record("/api/activities", 201, 0.5)

    stats = metrics.get("/api/activities", 200)
    assert stats is not None
    assert stats.count == 2
    assert stats.sum_seconds == pytest.approx(0.75)
    assert stats.max_seconds == pytest.approx(0.5)
    assert metrics.http_requests_total == 2


def test_record_keys_by_status_class() -> None:
    metrics = MetricsAggregator()
    metrics.record("/api/user", 200, 0.1)
    metrics.record("/api/user", 401, 0.1)

    assert metrics.get("/api/user", 200).count == 1
    assert metrics.get("/api/user", 401).count == 1
    assert metrics.get("/api/user", 500) is None


def test_record_for_metrics_path_is_a_noop() -> None:
    metrics = MetricsAggregator(metrics_path="/api/metrics")
    metrics.record("/api/user", 200, 0.1)
    before = metrics.snapshot()

    metrics.record("/api/metrics", 200, 0.1)

    assert metrics.snapshot() == before
    assert metrics.get("/api/metrics", 200) is None


def test_record_clamps_bad_durations() -> None:
    metrics = MetricsAggregator()
    metrics.record("/a", 200, -3.0)
    metrics.record("/a", 200, float("nan"))
    metrics.record("/a", 200, "soon")  # type: ignore[arg-type]
    metrics.record("/a", 200, float("inf"))
    metrics.record("/a", 200, float("-inf"))

    stats = metrics.get("/a", 200)
    assert stats.count == 5
    assert stats.sum_seconds == 0.0
    assert stats.max_seconds == 0.0

    metrics.record("/a", 200, 0.5)
    assert metrics.get("/a", 200).avg_seconds == pytest.approx(0.5 / 6)


def test_record_ignores_invalid_status_codes() -> None:
    metrics = MetricsAggregator()
    metrics.record("/a", 99, 0.1)
    metrics.record("/a", 600, 0.1)
    metrics.record("/a", None, 0.1)  # type: ignore[arg-type]

    assert metrics.snapshot()["requests"] == []
    assert metrics.http_requests_total == 0


def test_concurrent_records_lose_no_updates() -> None:
    metrics = MetricsAggregator()
    total = 2000

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: metrics.record("/api/activities", 200, 0.001), range(total)))

    assert metrics.get("/api/activities", 200).count == total
    assert metrics.http_requests_total == total


def test_injected_store_receives_buckets() -> None:
    store: dict[tuple[str, str], RequestStats] = {}
    metrics = MetricsAggregator(store=store)

    metrics.record("/auth/callback", 302, 0.2)

    assert list(store) == [("/auth/callback", "3xx")]
    assert store[("/auth/callback", "3xx")].count == 1


def test_separate_instances_are_isolated() -> None:
    first = MetricsAggregator()
    second = MetricsAggregator()
    first.record("/a", 200, 0.1)
    assert second.get("/a", 200) is None


def test_snapshot_shape_and_reset() -> None:
    metrics = MetricsAggregator()
    metrics.record("/a", 200, 0.2)
    metrics.record("/a", 200, 0.4)
    metrics.observe_auth("profile_created")
    metrics.observe_backend_call(0.05)

    snap = metrics.snapshot()
    assert snap["counters"]["http_requests_total"] == 2
    assert snap["counters"]["auth_events"] == {"profile_created": 1}
    assert snap["counters"]["backend_calls_total"] == 1
    row = snap["requests"][0]
    assert row["path"] == "/a"
    assert row["status_class"] == "2xx"
    assert row["count"] == 2
    assert row["avg_seconds"] == pytest.approx(0.3)
    assert snap["latency_seconds"]["backend_call"]["count"] == 1

    metrics.reset()
    snap = metrics.snapshot()
    assert snap["requests"] == []
    assert snap["counters"]["http_requests_total"] == 0
    assert snap["counters"]["auth_events"] == {}


async def test_metrics_endpoint_returns_snapshot_and_counts_requests(api_client) -> None:
    m1 = await api_client.get("/api/metrics")
    assert m1.status_code == 200
    payload1 = m1.json()
    assert "counters" in payload1
    assert "requests" in payload1

    # /api/metrics itself must not change the counters.
    m1b = await api_client.get("/api/metrics")
    assert m1b.json()["counters"]["http_requests_total"] == payload1["counters"]["http_requests_total"]

    callback = await api_client.get("/auth/callback")
    assert callback.status_code == 302

    payload2 = (await api_client.get("/api/metrics")).json()
    assert payload2["counters"]["http_requests_total"] == payload1["counters"]["http_requests_total"] + 1
    rows = {(row["path"], row["status_class"]): row for row in payload2["requests"]}
    assert rows[("/auth/callback", "3xx")]["count"] == 1
    assert all(row["path"] != "/api/metrics" for row in payload2["requests"])


async def test_health_endpoint_is_not_recorded(api_client) -> None:
    resp = await api_client.get("/api/health")
    assert resp.status_code == 200

    payload = (await api_client.get("/api/metrics")).json()
    assert payload["counters"]["http_requests_total"] == 0


async def test_metrics_endpoint_can_be_disabled(api_client, monkeypatch) -> None:
    from momskidz.config import get_settings

    monkeypatch.setenv("ENABLE_METRICS_ENDPOINT", "false")
    get_settings.cache_clear()

    resp = await api_client.get("/api/metrics")
    assert resp.status_code == 404
