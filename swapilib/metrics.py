import threading
import time
from dataclasses import dataclass


@dataclass
class Totals:
    fetches: int = 0
    bytes: int = 0
    errors: int = 0
    fetch_ms_sum: float = 0.0


class Metrics:
    def __init__(self):
        self._totals = Totals()
        self._lock = threading.Lock()
        self._start = time.time()

    def record_fetch(self, ok: bool, bytes_read: int, fetch_ms: float) -> None:
        with self._lock:
            self._totals.fetches += 1
            if ok:
                self._totals.bytes += max(0, bytes_read)
            else:
                self._totals.errors += 1
            self._totals.fetch_ms_sum += fetch_ms

    def snapshot(self) -> tuple[Totals, float]:
        with self._lock:
            t = Totals(
                fetches=self._totals.fetches,
                bytes=self._totals.bytes,
                errors=self._totals.errors,
                fetch_ms_sum=self._totals.fetch_ms_sum,
            )
        elapsed = max(1e-6, time.time() - self._start)
        return t, elapsed


class StatsLogger(threading.Thread):
    daemon = True

    def __init__(self, metrics: Metrics, interval_s: float, log_fn):
        super().__init__(name="stats-logger")
        self._metrics = metrics
        self._interval = max(0.5, interval_s)
        self._log = log_fn
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.is_set():
            self._stop_event.wait(self._interval)
            if self._stop_event.is_set():
                break
            totals, elapsed = self._metrics.snapshot()
            kb = totals.bytes / 1024
            avg_ms = totals.fetch_ms_sum / max(1, totals.fetches)
            self._log(
                "Perf: fetches=%d, errors=%d, KB=%.1f, avg_fetch_ms=%.1f, fetches/min=%.2f",
                totals.fetches,
                totals.errors,
                kb,
                avg_ms,
                totals.fetches * 60.0 / elapsed,
            )

    def stop(self) -> None:
        self._stop_event.set()
