import http.client
import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Dict, Optional

from urllib3 import exceptions as urllib3_exc

from .config import FetcherConfig
from .errors import FetchError, FetchTimeout, HttpStatusError, MalformedBody, TransportError
from .metrics import Metrics
from .net import HttpClient
from .types import AbortSignal, FetchResult, HttpClientProtocol


logger = logging.getLogger(__name__)


def _is_socket_timeout(exc: BaseException) -> bool:
    # NewConnectionError subclasses ConnectTimeoutError but means "refused".
    return isinstance(exc, urllib3_exc.TimeoutError) and not isinstance(exc, urllib3_exc.NewConnectionError)


class Fetcher:
    """Resolves API endpoints to parsed JSON, caching every successful load.

    Each cache miss issues one GET on a worker thread while the calling
    thread waits for it up to ``config.timeout_ms``. Whichever happens first
    decides the outcome; when the deadline wins the request is aborted and
    whatever it produces later is dropped. Only the calling thread touches the
    cache and counters, so a late response can never change them.

    Failures raise a :class:`~swapilib.errors.FetchError` subclass and bump
    ``error_count`` exactly once. Nothing is retried.
    """

    def __init__(self, config: FetcherConfig, http_client: Optional[HttpClientProtocol] = None):
        self.config = config
        self.http = http_client or HttpClient(
            config.user_agent, config.timeout_seconds, config.verify_tls
        )
        self.metrics = Metrics()
        self._cache: Dict[str, Any] = {}
        self._cache_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=config.max_workers, thread_name_prefix="fetch")

    @property
    def fetch_count(self) -> int:
        return self.metrics.snapshot()[0].fetches

    @property
    def error_count(self) -> int:
        return self.metrics.snapshot()[0].errors

    @property
    def total_bytes(self) -> int:
        return self.metrics.snapshot()[0].bytes

    @property
    def cache_size(self) -> int:
        with self._cache_lock:
            return len(self._cache)

    def is_cached(self, endpoint: str) -> bool:
        with self._cache_lock:
            return endpoint in self._cache

    def resolve(self, endpoint: str) -> Any:
        with self._cache_lock:
            if endpoint in self._cache:
                if self.config.debug:
                    logger.debug("Using cache for %s", endpoint)
                return self._cache[endpoint]

        url = self.config.base_url + endpoint
        signal = AbortSignal()
        t0 = time.perf_counter()
        future = self._executor.submit(self.http.fetch, url, signal)
        try:
            response = future.result(timeout=self.config.timeout_seconds)
        except FuturesTimeoutError:
            # Also catches socket.timeout raised by the worker itself.
            signal.abort()
            future.cancel()
            raise self._failed(FetchTimeout(endpoint, self.config.timeout_ms), t0)
        except urllib3_exc.HTTPError as exc:
            if _is_socket_timeout(exc):
                raise self._failed(FetchTimeout(endpoint, self.config.timeout_ms), t0) from exc
            raise self._failed(TransportError(endpoint, exc), t0) from exc
        except (OSError, http.client.HTTPException) as exc:
            raise self._failed(TransportError(endpoint, exc), t0) from exc

        if response.status >= 400:
            raise self._failed(HttpStatusError(endpoint, response.status), t0)
        try:
            value = json.loads(response.body)
        except ValueError as exc:
            raise self._failed(MalformedBody(endpoint, exc), t0) from exc
        return self._store(endpoint, value, response, t0)

    def _store(self, endpoint: str, value: Any, response: FetchResult, t0: float) -> Any:
        with self._cache_lock:
            # A concurrent resolve of the same endpoint may have landed first; keep its value.
            value = self._cache.setdefault(endpoint, value)
            cache_size = len(self._cache)
        self.metrics.record_fetch(True, response.size_bytes, (time.perf_counter() - t0) * 1000.0)
        if self.config.debug:
            logger.debug(
                "Loaded %s: %d bytes, cache entries: %d", endpoint, response.size_bytes, cache_size
            )
        return value

    def _failed(self, error: FetchError, t0: float) -> FetchError:
        self.metrics.record_fetch(False, 0, (time.perf_counter() - t0) * 1000.0)
        return error

    def stats(self) -> Dict[str, Any]:
        totals, _ = self.metrics.snapshot()
        return {
            "fetches": totals.fetches,
            "cacheSize": self.cache_size,
            "dataSize": totals.bytes,
            "errors": totals.errors,
            "debug": self.config.debug,
            "timeout": self.config.timeout_ms,
        }

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
