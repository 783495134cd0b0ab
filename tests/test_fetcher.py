import json
import logging
import threading
import time

import pytest

from swapilib.config import FetcherConfig
from swapilib.errors import FetchTimeout, HttpStatusError, MalformedBody, TransportError
from swapilib.fetcher import Fetcher
from swapilib.types import AbortSignal, FetchResult, HttpClientProtocol


BASE = "https://swapi.test/api/"
FILMS_JSON = '{"results":[{"title":"A","release_date":"1977-05-25"},{"title":"B","release_date":"1980-05-21"}]}'


class StubHttp(HttpClientProtocol):
    """Serves canned responses keyed by endpoint.

    A route is ``(status, body)`` or ``(status, body, delay_s)``, or an
    exception instance to raise.
    """

    def __init__(self, routes):
        self.routes = routes
        self.calls = []
        self.signals = []
        self.finished = threading.Event()
        self._lock = threading.Lock()

    def fetch(self, url: str, signal: AbortSignal) -> FetchResult:
        endpoint = url[len(BASE):]
        with self._lock:
            self.calls.append(endpoint)
            self.signals.append(signal)
        try:
            route = self.routes[endpoint]
            if isinstance(route, BaseException):
                raise route
            status, body = route[0], route[1]
            if len(route) > 2:
                time.sleep(route[2])
            if isinstance(body, str):
                body = body.encode("utf-8")
            return FetchResult(status=status, body=body)
        finally:
            self.finished.set()


def make_fetcher(routes, timeout_ms=1000, debug=True):
    http = StubHttp(routes)
    fetcher = Fetcher(FetcherConfig(base_url=BASE, timeout_ms=timeout_ms, debug=debug), http_client=http)
    return fetcher, http


def test_films_success_is_cached_and_counted():
    fetcher, http = make_fetcher({"films/": (200, FILMS_JSON)})

    first = fetcher.resolve("films/")

    assert first == json.loads(FILMS_JSON)
    assert fetcher.is_cached("films/")
    assert fetcher.fetch_count == 1
    assert fetcher.error_count == 0
    assert fetcher.total_bytes == len(FILMS_JSON.encode("utf-8"))

    second = fetcher.resolve("films/")

    assert second is first
    assert http.calls == ["films/"]
    assert fetcher.fetch_count == 1
    assert fetcher.total_bytes == len(FILMS_JSON.encode("utf-8"))


def test_cache_hits_do_no_io_and_leave_counters_alone():
    fetcher, http = make_fetcher({"people/1": (200, '{"name": "Luke Skywalker"}')})
    value = fetcher.resolve("people/1")
    before = fetcher.stats()

    for _ in range(5):
        assert fetcher.resolve("people/1") == value

    assert http.calls == ["people/1"]
    assert fetcher.stats() == before


def test_not_found_raises_http_status_and_is_not_cached():
    fetcher, _ = make_fetcher({"people/999": (404, '{"detail": "Not found"}')})

    with pytest.raises(HttpStatusError) as excinfo:
        fetcher.resolve("people/999")

    assert excinfo.value.endpoint == "people/999"
    assert excinfo.value.status_code == 404
    assert fetcher.error_count == 1
    assert fetcher.total_bytes == 0
    assert not fetcher.is_cached("people/999")


def test_server_error_status_is_an_http_status_failure():
    fetcher, _ = make_fetcher({"planets/?page=1": (503, "")})

    with pytest.raises(HttpStatusError) as excinfo:
        fetcher.resolve("planets/?page=1")

    assert excinfo.value.status_code == 503
    assert fetcher.error_count == 1


def test_transport_failure_is_wrapped_with_cause():
    cause = ConnectionResetError("connection reset by peer")
    fetcher, _ = make_fetcher({"vehicles/4": cause})

    with pytest.raises(TransportError) as excinfo:
        fetcher.resolve("vehicles/4")

    assert excinfo.value.endpoint == "vehicles/4"
    assert excinfo.value.cause is cause
    assert fetcher.error_count == 1
    assert fetcher.cache_size == 0


def test_malformed_body_is_reported_and_not_cached():
    fetcher, _ = make_fetcher({"starships/?page=1": (200, "<html>oops</html>")})

    with pytest.raises(MalformedBody) as excinfo:
        fetcher.resolve("starships/?page=1")

    assert excinfo.value.endpoint == "starships/?page=1"
    assert isinstance(excinfo.value.cause, ValueError)
    assert fetcher.error_count == 1
    assert fetcher.total_bytes == 0
    assert not fetcher.is_cached("starships/?page=1")


def test_empty_body_is_malformed():
    fetcher, _ = make_fetcher({"films/": (200, b"")})

    with pytest.raises(MalformedBody):
        fetcher.resolve("films/")


def test_response_after_deadline_times_out():
    fetcher, http = make_fetcher({"people/2": (200, '{"name": "C-3PO"}', 0.5)}, timeout_ms=100)

    t0 = time.perf_counter()
    with pytest.raises(FetchTimeout) as excinfo:
        fetcher.resolve("people/2")
    elapsed = time.perf_counter() - t0

    assert excinfo.value.endpoint == "people/2"
    assert excinfo.value.timeout_ms == 100
    assert elapsed < 0.4
    assert http.signals[0].aborted
    assert fetcher.error_count == 1


def test_response_before_deadline_succeeds():
    fetcher, _ = make_fetcher({"people/2": (200, '{"name": "C-3PO"}', 0.05)}, timeout_ms=1000)

    assert fetcher.resolve("people/2") == {"name": "C-3PO"}
    assert fetcher.error_count == 0


def test_late_response_does_not_touch_cache_or_counters():
    fetcher, http = make_fetcher({"people/3": (200, '{"name": "R2-D2"}', 0.3)}, timeout_ms=50)

    with pytest.raises(FetchTimeout):
        fetcher.resolve("people/3")
    assert http.finished.wait(2.0)
    time.sleep(0.05)

    assert not fetcher.is_cached("people/3")
    assert fetcher.error_count == 1
    assert fetcher.fetch_count == 1
    assert fetcher.total_bytes == 0


def test_abortable_request_stops_early():
    stopped = threading.Event()

    class SlowHttp(HttpClientProtocol):
        def fetch(self, url, signal):
            if signal.wait(5.0):
                stopped.set()
                raise ConnectionAbortedError("aborted")
            return FetchResult(status=200, body=b"{}")

    fetcher = Fetcher(FetcherConfig(base_url=BASE, timeout_ms=50), http_client=SlowHttp())

    with pytest.raises(FetchTimeout):
        fetcher.resolve("films/")

    assert stopped.wait(1.0)
    assert fetcher.error_count == 1


def test_failure_then_retry_can_succeed():
    fetcher, http = make_fetcher({"people/1": (500, "")})
    with pytest.raises(HttpStatusError):
        fetcher.resolve("people/1")

    http.routes["people/1"] = (200, '{"name": "Luke Skywalker"}')

    assert fetcher.resolve("people/1") == {"name": "Luke Skywalker"}
    assert fetcher.error_count == 1
    assert fetcher.fetch_count == 2
    assert http.calls == ["people/1", "people/1"]


def test_total_bytes_counts_encoded_bytes():
    bodies = {
        "planets/1": '{"name": "Tatooine"}',
        "planets/8": '{"name": "Naboo", "note": "café à la mode"}',
        "people/5": '{"name": "Leia Organa", "quote": "★ help me ★"}',
    }
    fetcher, _ = make_fetcher({k: (200, v) for k, v in bodies.items()})

    for endpoint in bodies:
        fetcher.resolve(endpoint)

    expected = sum(len(body.encode("utf-8")) for body in bodies.values())
    assert fetcher.total_bytes == expected
    assert expected > sum(len(body) for body in bodies.values())


def test_error_count_tracks_each_failure_exactly_once():
    fetcher, _ = make_fetcher(
        {
            "ok": (200, "[]"),
            "missing": (404, ""),
            "broken": (200, "{"),
            "down": OSError("network unreachable"),
        }
    )
    outcomes = []
    for endpoint in ["ok", "missing", "broken", "down", "ok"]:
        try:
            fetcher.resolve(endpoint)
            outcomes.append("ok")
        except (HttpStatusError, MalformedBody, TransportError) as exc:
            outcomes.append(exc.kind)

    assert outcomes == ["ok", "http_status", "malformed_body", "transport", "ok"]
    assert fetcher.error_count == 3
    assert fetcher.fetch_count == 4


def test_falsy_json_values_are_cached():
    fetcher, http = make_fetcher({"empty": (200, "[]")})

    assert fetcher.resolve("empty") == []
    assert fetcher.resolve("empty") == []
    assert http.calls == ["empty"]


def test_debug_trace_on_load(caplog):
    fetcher, _ = make_fetcher({"films/": (200, FILMS_JSON)})

    with caplog.at_level(logging.DEBUG, logger="swapilib.fetcher"):
        fetcher.resolve("films/")
        fetcher.resolve("films/")

    messages = [r.getMessage() for r in caplog.records]
    assert f"Loaded films/: {len(FILMS_JSON)} bytes, cache entries: 1" in messages
    assert "Using cache for films/" in messages


def test_no_debug_trace_when_disabled(caplog):
    fetcher, _ = make_fetcher({"films/": (200, FILMS_JSON)}, debug=False)

    with caplog.at_level(logging.DEBUG, logger="swapilib.fetcher"):
        fetcher.resolve("films/")

    assert not [r for r in caplog.records if r.name == "swapilib.fetcher"]


def test_concurrent_resolves_of_distinct_endpoints():
    routes = {f"people/{i}": (200, json.dumps({"id": i}), 0.01) for i in range(1, 21)}
    fetcher, _ = make_fetcher(routes, timeout_ms=2000)
    results = {}

    def worker(endpoint):
        results[endpoint] = fetcher.resolve(endpoint)

    threads = [threading.Thread(target=worker, args=(e,)) for e in routes]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert fetcher.cache_size == 20
    assert all(results[f"people/{i}"] == {"id": i} for i in range(1, 21))
    assert fetcher.error_count == 0


def test_concurrent_resolves_of_same_endpoint_agree():
    fetcher, http = make_fetcher({"films/": (200, FILMS_JSON, 0.05)}, timeout_ms=2000)
    results = []

    threads = [threading.Thread(target=lambda: results.append(fetcher.resolve("films/"))) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    # Duplicate network calls are allowed; the cache still holds one entry.
    assert 1 <= len(http.calls) <= 4
    assert fetcher.cache_size == 1
    assert all(r == json.loads(FILMS_JSON) for r in results)
    assert fetcher.resolve("films/") == json.loads(FILMS_JSON)
