from dataclasses import dataclass


DEFAULT_BASE_URL = "https://swapi.dev/api/"
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_USER_AGENT = "swapi-demo/1.0 (+https://swapi.dev)"


@dataclass(frozen=True)
class FetcherConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    debug: bool = True
    # Trust-all by default. Certificates are only checked when verify_tls is set.
    verify_tls: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    max_workers: int = 8
    metrics_interval: float = 0.0

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0
