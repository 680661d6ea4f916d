"""Character creation and clamped stat mutation.

Health and influence live in [0, 100]. Deltas from the story are applied
as-is and the result is clamped; out-of-range deltas are absorbed, never
rejected.
"""

from __future__ import annotations

from throne_saga.config import DEFAULT_BIO, starting_influence
from throne_saga.models import Character, House

STAT_MIN = 0
STAT_MAX = 100


def clamp(value: int, low: int = STAT_MIN, high: int = STAT_MAX) -> int:
    return max(low, min(high, value))


def new_character(name: str, house: House | str, bio: str = "") -> Character:
    """Create a character with full health and the house's starting influence."""
    house = House(house)
    return Character(
        name=name,
        house=house,
        bio=bio.strip() or DEFAULT_BIO,
        health=STAT_MAX,
        influence=starting_influence(house),
    )


def apply_delta(character: Character, health_delta: int, influence_delta: int) -> Character:
    """Return a copy of the character with both deltas applied and clamped."""
    return character.model_copy(update={
        "health": clamp(character.health + health_delta),
        "influence": clamp(character.influence + influence_delta),
    })


def is_dead(character: Character) -> bool:
    return character.health <= STAT_MIN
