from __future__ import annotations

import math
import random
import secrets

ADJECTIVES = ("Swift", "Brave", "Clever", "Quick", "Bold", "Smart", "Fast", "Cool", "Mighty", "Sharp")
NOUNS = (
    "Explorer",
    "Ranger",
    "Scout",
    "Traveler",
    "Navigator",
    "Wanderer",
    "Adventurer",
    "Hunter",
    "Seeker",
    "Roamer",
)

_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_ID_SUFFIX_LENGTH = 5


def parse_coordinate(value: object) -> float | None:
    """Parse a float or numeric string; None when it is not a finite number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def validate_location(lat: object, lng: object) -> bool:
    latitude = parse_coordinate(lat)
    longitude = parse_coordinate(lng)
    if latitude is None or longitude is None:
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def generate_player_name(rng: random.Random | None = None) -> str:
    """Fallback display name, e.g. "SwiftRanger42". Not guaranteed unique."""
    rng = rng or random
    return f"{rng.choice(ADJECTIVES)}{rng.choice(NOUNS)}{rng.randrange(1000)}"


def generate_player_id(now: int) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"player_{now}_{suffix}"
