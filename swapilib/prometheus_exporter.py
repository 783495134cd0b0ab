import logging
import threading
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, start_http_server

from .fetcher import Fetcher


logger = logging.getLogger(__name__)


class PrometheusExporter:
    def __init__(self, fetcher: Fetcher, port: int = 8000, registry: CollectorRegistry = REGISTRY) -> None:
        self.fetcher = fetcher
        self.port = port
        self.registry = registry
        self._server_thread: threading.Thread | None = None
        self._stop_event = threading.Event()

        self.fetches_total = Counter('swapi_fetches_total', 'Total number of network fetches', registry=registry)
        self.bytes_total = Counter('swapi_bytes_total', 'Total number of JSON bytes cached', registry=registry)
        self.errors_total = Counter('swapi_errors_total', 'Total number of failed fetches', registry=registry)
        self.cache_entries = Gauge('swapi_cache_entries', 'Endpoints currently cached', registry=registry)
        self.avg_fetch_duration_seconds = Gauge(
            'swapi_avg_fetch_duration_seconds', 'Average fetch duration in seconds', registry=registry
        )

        self._last_fetches = 0
        self._last_bytes = 0
        self._last_errors = 0

    def start(self) -> None:
        start_http_server(self.port, registry=self.registry)
        logger.info("Prometheus metrics server started on port %d", self.port)

        self._server_thread = threading.Thread(
            target=self._update_metrics_loop,
            name="prometheus-updater",
            daemon=True
        )
        self._server_thread.start()

    def _update_metrics_loop(self) -> None:
        while not self._stop_event.is_set():
            self._update_metrics()
            self._stop_event.wait(5.0)

    def _update_metrics(self) -> None:
        totals, _ = self.fetcher.metrics.snapshot()

        fetches_delta = totals.fetches - self._last_fetches
        bytes_delta = totals.bytes - self._last_bytes
        errors_delta = totals.errors - self._last_errors

        if fetches_delta > 0:
            self.fetches_total.inc(fetches_delta)
        if bytes_delta > 0:
            self.bytes_total.inc(bytes_delta)
        if errors_delta > 0:
            self.errors_total.inc(errors_delta)

        self.cache_entries.set(self.fetcher.cache_size)
        if totals.fetches > 0:
            self.avg_fetch_duration_seconds.set(totals.fetch_ms_sum / totals.fetches / 1000.0)

        self._last_fetches = totals.fetches
        self._last_bytes = totals.bytes
        self._last_errors = totals.errors

    def stop(self) -> None:
        self._stop_event.set()
        if self._server_thread:
            self._server_thread.join(timeout=2.0)
