import threading

import httpx
import pytest

from resilient_api import Interceptor, InterceptorPipeline, LoggingInterceptor, MetricsRegistry


@pytest.mark.concurrency
def test_concurrent_recording_loses_nothing():
    registry = MetricsRegistry()
    workers, per_worker = 8, 250
    barrier = threading.Barrier(workers)

    def worker(index):
        barrier.wait()
        for i in range(per_worker):
            registry.record("GET", f"/items/{index % 2}", 200, float(i))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = registry.snapshot()
    assert set(snapshot) == {"GET /items/0", "GET /items/1"}
    assert sum(len(entries) for entries in snapshot.values()) == workers * per_worker


def test_snapshot_is_detached_copy():
    registry = MetricsRegistry()
    registry.record("POST", "/orders", 201, 4.0)

    snapshot = registry.snapshot()
    snapshot["POST /orders"].append("junk")
    snapshot["GET /other"] = []
    registry.record("POST", "/orders", 500, 9.0)

    assert len(snapshot["POST /orders"]) == 2
    assert [e.status for e in registry.entries("POST", "/orders")] == [201, 500]
    assert "GET /other" not in registry.snapshot()


def test_summary_aggregates_durations():
    registry = MetricsRegistry()
    for duration in (10.0, 20.0, 60.0):
        registry.record("GET", "/users", 200, duration)

    summary = registry.summary()["GET /users"]

    assert summary == {"count": 3, "min_ms": 10.0, "max_ms": 60.0, "avg_ms": 30.0}


def test_entries_for_unknown_key_is_empty():
    assert MetricsRegistry().entries("GET", "/nothing") == []


class Recorder(Interceptor):
    def __init__(self, name, calls):
        self.name = name
        self.calls = calls

    def before_request(self, request):
        self.calls.append(f"{self.name}:before")

    def after_response(self, response):
        self.calls.append(f"{self.name}:after")


class AfterOnly:
    def __init__(self, calls):
        self.calls = calls

    def after_response(self, response):
        self.calls.append("after-only")


def make_exchange():
    request = httpx.Request("GET", "https://api.example.com/ping")
    return request, httpx.Response(204, request=request)


def test_pipeline_runs_hooks_in_registration_order():
    calls = []
    pipeline = InterceptorPipeline()
    pipeline.register(Recorder("first", calls))
    pipeline.register(AfterOnly(calls))
    pipeline.register(Recorder("second", calls))
    request, response = make_exchange()

    pipeline.run_before(request)
    pipeline.run_after(response)

    assert calls == [
        "first:before",
        "second:before",
        "first:after",
        "after-only",
        "second:after",
    ]
    assert len(pipeline.before_hooks) == 2
    assert len(pipeline.after_hooks) == 3


def test_object_without_hooks_is_ignored():
    pipeline = InterceptorPipeline()

    pipeline.register(object())

    assert pipeline.before_hooks == []
    assert pipeline.after_hooks == []


def test_before_hook_can_mutate_request_headers():
    pipeline = InterceptorPipeline()
    pipeline.add_before(lambda request: request.headers.update({"X-Trace": "t-1"}))
    request, _ = make_exchange()

    pipeline.run_before(request)

    assert request.headers["X-Trace"] == "t-1"


def test_logging_interceptor_is_a_full_interceptor():
    pipeline = InterceptorPipeline()
    pipeline.register(LoggingInterceptor())
    request, response = make_exchange()

    pipeline.run_before(request)
    pipeline.run_after(response)

    assert len(pipeline.before_hooks) == 1
    assert len(pipeline.after_hooks) == 1
