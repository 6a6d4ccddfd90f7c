import random
import re

import pytest

from services.validation import (
    ADJECTIVES,
    NOUNS,
    generate_player_id,
    generate_player_name,
    parse_coordinate,
    validate_location,
)

NAME_PATTERN = re.compile(rf"^({'|'.join(ADJECTIVES)})({'|'.join(NOUNS)})(\d{{1,3}})$")


@pytest.mark.parametrize(
    ("lat", "lng", "expected"),
    [
        (91, 0, False),
        (-90, -180, True),
        ("abc", 0, False),
        (45.5, 200, False),
        (90, 180, True),
        (0, 0, True),
        ("45.5", "-122.25", True),
        (" 12.5 ", "7", True),
        (None, 0, False),
        (True, 0, False),
        (float("nan"), 0, False),
        ("inf", 0, False),
        ([1], 0, False),
        (-90.0001, 0, False),
        (10**400, 0, False),
        (0, -(10**400), False),
    ],
)
def test_validate_location(lat: object, lng: object, expected: bool) -> None:
    assert validate_location(lat, lng) is expected


def test_parse_coordinate_returns_floats() -> None:
    assert parse_coordinate("3") == 3.0
    assert parse_coordinate(2) == 2.0
    assert parse_coordinate("north") is None


def test_generated_name_matches_grammar() -> None:
    rng = random.Random(7)
    for _ in range(50):
        match = NAME_PATTERN.match(generate_player_name(rng))
        assert match is not None
        assert 0 <= int(match.group(3)) < 1000


def test_generated_player_id_embeds_timestamp() -> None:
    player_id = generate_player_id(1234)
    assert re.fullmatch(r"player_1234_[0-9a-z]{5}", player_id)
