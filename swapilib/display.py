"""Console renderings of the API payloads fetched by the demo.

Each formatter takes the parsed JSON of one endpoint and returns the lines to
print, so callers decide where the output goes.
"""
import re
from typing import Any, Dict, List, Optional

POPULATION_THRESHOLD = 1_000_000_000
DIAMETER_THRESHOLD = 10_000
MAX_STARSHIPS_TO_SHOW = 3

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def leading_int(value: Any) -> Optional[int]:
    """Parse the integer prefix of an API field ("1000000000", "12,500" -> 12)."""
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


def format_cost(cost: Any) -> str:
    if cost is None or cost == "unknown":
        return "unknown"
    return f"{cost} credits"


def format_character(character: Dict[str, Any]) -> List[str]:
    lines = [
        f"Character: {character.get('name')}",
        f"Height: {character.get('height')}",
        f"Mass: {character.get('mass')}",
        f"Birth year: {character.get('birth_year')}",
    ]
    films = character.get("films") or []
    if films:
        lines.append(f"Appears in {len(films)} films")
    return lines


def format_starships(starships: Dict[str, Any]) -> List[str]:
    lines = ["", f"Total starships: {starships.get('count')}"]
    for i, ship in enumerate((starships.get("results") or [])[:MAX_STARSHIPS_TO_SHOW], start=1):
        lines.extend(
            [
                "",
                f"Starship {i}:",
                f"Name: {ship.get('name')}",
                f"Model: {ship.get('model')}",
                f"Manufacturer: {ship.get('manufacturer')}",
                f"Cost: {format_cost(ship.get('cost_in_credits'))}",
                f"Max atmosphering speed: {ship.get('max_atmosphering_speed')}",
                f"Hyperdrive rating: {ship.get('hyperdrive_rating')}",
            ]
        )
        pilots = ship.get("pilots") or []
        if pilots:
            lines.append(f"Pilots: {len(pilots)}")
    return lines


def is_large_planet(planet: Dict[str, Any]) -> bool:
    population = leading_int(planet.get("population"))
    diameter = leading_int(planet.get("diameter"))
    if population is None or diameter is None:
        return False
    return population > POPULATION_THRESHOLD and diameter > DIAMETER_THRESHOLD


def format_large_planets(planets: Dict[str, Any]) -> List[str]:
    lines = ["", "Large, populous planets:"]
    for planet in planets.get("results") or []:
        if not is_large_planet(planet):
            continue
        lines.append(
            f"{planet.get('name')} - Population: {planet.get('population')}"
            f" - Diameter: {planet.get('diameter')} - Climate: {planet.get('climate')}"
        )
        films = planet.get("films") or []
        if films:
            lines.append(f"  Appears in {len(films)} films")
    return lines


def format_films(films: Dict[str, Any]) -> List[str]:
    # release_date is ISO 8601, so string order is chronological order
    ordered = sorted(films.get("results") or [], key=lambda film: film.get("release_date") or "")
    lines = ["", "Star Wars films in chronological order:"]
    for i, film in enumerate(ordered, start=1):
        lines.extend(
            [
                f"{i}. {film.get('title')} ({film.get('release_date')})",
                f"   Director: {film.get('director')}",
                f"   Producer: {film.get('producer')}",
                f"   Characters: {len(film.get('characters') or [])}",
                f"   Planets: {len(film.get('planets') or [])}",
            ]
        )
    return lines


def format_vehicle(vehicle: Dict[str, Any]) -> List[str]:
    return [
        "",
        "Featured vehicle:",
        f"Name: {vehicle.get('name')}",
        f"Model: {vehicle.get('model')}",
        f"Manufacturer: {vehicle.get('manufacturer')}",
        f"Cost: {format_cost(vehicle.get('cost_in_credits'))}",
        f"Length: {vehicle.get('length')}",
        f"Crew: {vehicle.get('crew')}",
        f"Passengers: {vehicle.get('passengers')}",
    ]


def format_stats(runs: int, stats: Dict[str, Any]) -> List[str]:
    return [
        "",
        "Statistics:",
        f"API runs: {runs}",
        f"Network fetches: {stats['fetches']}",
        f"Cache entries: {stats['cacheSize']}",
        f"Total data size: {stats['dataSize']} bytes",
        f"Errors: {stats['errors']}",
    ]
