import logging
import threading
from typing import Callable

from .display import (
    format_character,
    format_films,
    format_large_planets,
    format_starships,
    format_stats,
    format_vehicle,
)
from .errors import FetchError
from .fetcher import Fetcher


logger = logging.getLogger(__name__)

MAX_VEHICLE_ID = 4


class DemoRunner:
    """Fetches one round of demo data and prints it.

    The character and vehicle ids walk forward by one per run until the
    vehicle id passes ``MAX_VEHICLE_ID``; after that runs keep showing the
    last character and skip the vehicle section.
    """

    def __init__(self, fetcher: Fetcher, out: Callable[[str], None] = print):
        self.fetcher = fetcher
        self.out = out
        self.runs = 0
        self.last_vehicle_id = 1
        self._lock = threading.Lock()

    def _emit(self, lines) -> None:
        for line in lines:
            self.out(line)

    def run(self) -> bool:
        # Runs are serialized so the id rotation stays consistent.
        with self._lock:
            self.runs += 1
            logger.debug("Starting data fetch (run %d)", self.runs)
            try:
                self._run_once()
            except FetchError as exc:
                logger.error("Error fetching data (%s): %s", exc.kind, exc)
                return False
            if self.fetcher.config.debug:
                self._emit(format_stats(self.runs, self.fetcher.stats()))
            return True

    def _run_once(self) -> None:
        vehicle_id = self.last_vehicle_id
        self._emit(format_character(self.fetcher.resolve(f"people/{vehicle_id}")))
        self._emit(format_starships(self.fetcher.resolve("starships/?page=1")))
        self._emit(format_large_planets(self.fetcher.resolve("planets/?page=1")))
        self._emit(format_films(self.fetcher.resolve("films/")))
        if vehicle_id <= MAX_VEHICLE_ID:
            self._emit(format_vehicle(self.fetcher.resolve(f"vehicles/{vehicle_id}")))
            self.last_vehicle_id = vehicle_id + 1
