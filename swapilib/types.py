import threading
from dataclasses import dataclass
from typing import Callable, List, Protocol


@dataclass(frozen=True)
class FetchResult:
    status: int
    body: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.body)


class AbortSignal:
    """One-shot flag shared between a caller and the worker running its request.

    Callbacks registered with :meth:`add_callback` run once, on the aborting
    thread, when :meth:`abort` is first called (or immediately when
    registered after the fact).
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        return self._event.wait(timeout)

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def abort(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()


class HttpClientProtocol(Protocol):
    def fetch(self, url: str, signal: AbortSignal) -> FetchResult: ...
