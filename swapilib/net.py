import logging
import socket
from urllib.parse import urlsplit

import urllib3
from urllib3 import exceptions as urllib3_exc
from urllib3.connection import HTTPConnection, HTTPSConnection

from .errors import RequestAborted
from .types import AbortSignal, FetchResult


logger = logging.getLogger(__name__)

CHUNK_SIZE = 16 * 1024


def _shutdown_socket(conn: HTTPConnection) -> None:
    sock = conn.sock
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass


class HttpClient:
    def __init__(self, user_agent: str, request_timeout: float, verify_tls: bool = False):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.verify_tls = verify_tls
        self.cert_reqs = "CERT_REQUIRED" if verify_tls else "CERT_NONE"
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "application/json",
        }
        if not verify_tls:
            urllib3.disable_warnings(urllib3_exc.InsecureRequestWarning)
            logger.warning("TLS certificate verification is disabled for outbound requests")

    def _connection(self, url: str) -> tuple[HTTPConnection, str]:
        parts = urlsplit(url)
        path = parts.path or "/"
        if parts.query:
            path += "?" + parts.query
        if parts.scheme == "https":
            conn = HTTPSConnection(
                parts.hostname, parts.port, timeout=self.request_timeout, cert_reqs=self.cert_reqs
            )
        else:
            conn = HTTPConnection(parts.hostname, parts.port, timeout=self.request_timeout)
        return conn, path

    def fetch(self, url: str, signal: AbortSignal) -> FetchResult:
        """GET ``url`` and return its status and raw body.

        Error statuses (>= 400) come back with an empty body; their payload is
        never read. Transport failures propagate as urllib3, http.client or OS
        errors. Once connected, aborting ``signal`` shuts the socket down, so
        a request stuck anywhere between sending and the last body byte fails
        at once instead of waiting on the per-read socket timeout.
        """
        if signal.aborted:
            raise RequestAborted(url)
        conn, path = self._connection(url)
        try:
            conn.connect()
            signal.add_callback(lambda: _shutdown_socket(conn))
            if signal.aborted:
                raise RequestAborted(url)
            conn.request("GET", path, headers=self.headers, preload_content=False)
            response = conn.getresponse()
            if response.status >= 400:
                return FetchResult(status=response.status, body=b"")
            body = bytearray()
            for chunk in response.stream(CHUNK_SIZE):
                if signal.aborted:
                    raise RequestAborted(url)
                body.extend(chunk)
            return FetchResult(status=response.status, body=bytes(body))
        finally:
            conn.close()
