"""Failure outcomes of :meth:`swapilib.fetcher.Fetcher.resolve`.

Every failure carries the endpoint it was raised for plus one kind-specific
detail::

    FetchError
    +-- FetchTimeout     (timeout_ms)
    +-- HttpStatusError  (status_code)
    +-- TransportError   (cause)
    +-- MalformedBody    (cause)

``RequestAborted`` is internal to the HTTP client: it is raised on the worker
thread after the caller gave up, and never reaches callers of ``resolve``.
"""


class FetchError(Exception):
    kind = "error"

    def __init__(self, endpoint: str, message: str):
        super().__init__(message)
        self.endpoint = endpoint


class FetchTimeout(FetchError):
    kind = "timeout"

    def __init__(self, endpoint: str, timeout_ms: int):
        super().__init__(endpoint, f"Request to {endpoint} timed out after {timeout_ms} ms")
        self.timeout_ms = timeout_ms


class HttpStatusError(FetchError):
    kind = "http_status"

    def __init__(self, endpoint: str, status_code: int):
        super().__init__(endpoint, f"HTTP {status_code} while fetching {endpoint}")
        self.status_code = status_code


class TransportError(FetchError):
    kind = "transport"

    def __init__(self, endpoint: str, cause: BaseException):
        super().__init__(endpoint, f"Transport failure while fetching {endpoint}: {cause}")
        self.cause = cause


class MalformedBody(FetchError):
    kind = "malformed_body"

    def __init__(self, endpoint: str, cause: BaseException):
        super().__init__(endpoint, f"Response from {endpoint} is not valid JSON: {cause}")
        self.cause = cause


class RequestAborted(Exception):
    def __init__(self, url: str):
        super().__init__(f"Request to {url} was aborted")
        self.url = url
