#!/usr/bin/env python3
import argparse
import logging
import os
from typing import List, Optional

import uvicorn

from swapilib.config import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_MS, DEFAULT_USER_AGENT, FetcherConfig
from swapilib.demo import DemoRunner
from swapilib.display import leading_int
from swapilib.fetcher import Fetcher
from swapilib.metrics import StatsLogger
from swapilib.prometheus_exporter import PrometheusExporter
from swapilib.server import create_app


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Star Wars API demo server with an in-memory response cache.")
    parser.add_argument("--no-debug", dest="debug", action="store_false", help="Disable debug traces and stats output.")
    parser.add_argument("--timeout", default=None, help=f"Request timeout in milliseconds (default {DEFAULT_TIMEOUT_MS}).")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", "3000")), help="Port for the demo server.")
    parser.add_argument("--host", default="127.0.0.1", help="Interface for the demo server.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="Base URL endpoints are appended to.")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header to send.")
    parser.add_argument("--verify-tls", action="store_true", help="Verify upstream TLS certificates (off by default).")
    parser.add_argument("--max-workers", type=int, default=8, help="Threads available for concurrent fetches.")
    parser.add_argument("--metrics-interval", type=float, default=0.0, help="Seconds between perf logs (0 to disable).")
    parser.add_argument("--prometheus-port", type=int, default=0, help="Port for Prometheus metrics (0 to disable).")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase logging verbosity.")
    return parser.parse_args(argv)


def parse_timeout(raw: Optional[str]) -> int:
    if raw is None:
        return DEFAULT_TIMEOUT_MS
    # Leading integer wins, so "300ms" means 300.
    value = leading_int(raw)
    if value is None:
        logging.warning("Ignoring invalid --timeout %r, using %d ms", raw, DEFAULT_TIMEOUT_MS)
        return DEFAULT_TIMEOUT_MS
    if value <= 0:
        logging.warning("Ignoring non-positive --timeout %d, using %d ms", value, DEFAULT_TIMEOUT_MS)
        return DEFAULT_TIMEOUT_MS
    return value


def build_config(args: argparse.Namespace) -> FetcherConfig:
    base_url = args.base_url if args.base_url.endswith("/") else args.base_url + "/"
    return FetcherConfig(
        base_url=base_url,
        timeout_ms=parse_timeout(args.timeout),
        debug=args.debug,
        verify_tls=args.verify_tls,
        user_agent=args.user_agent,
        max_workers=max(1, args.max_workers),
        metrics_interval=max(0.0, args.metrics_interval),
    )


def log_level_for(args: argparse.Namespace) -> int:
    if args.debug or args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    return logging.WARNING


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=log_level_for(args),
        format="%(asctime)s %(levelname)s %(threadName)s %(message)s",
    )

    config = build_config(args)
    fetcher = Fetcher(config)
    runner = DemoRunner(fetcher)
    app = create_app(fetcher, runner)

    stats_thread = None
    if config.metrics_interval > 0:
        stats_thread = StatsLogger(fetcher.metrics, config.metrics_interval, logging.info)
        stats_thread.start()

    exporter = None
    if args.prometheus_port:
        exporter = PrometheusExporter(fetcher, port=args.prometheus_port)
        exporter.start()
        logging.info("Prometheus metrics available at http://0.0.0.0:%d/metrics", args.prometheus_port)

    print(f"Server running at http://{args.host}:{args.port}/")
    logging.debug("Debug mode enabled")
    logging.debug("Timeout set to %d ms", config.timeout_ms)
    try:
        uvicorn.run(app, host=args.host, port=args.port, log_level="warning")
    finally:
        if exporter:
            exporter.stop()
        if stats_thread:
            stats_thread.stop()
            stats_thread.join(timeout=2.0)
        fetcher.close()


if __name__ == "__main__":
    main()
