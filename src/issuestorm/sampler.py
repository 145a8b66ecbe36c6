import random
from collections.abc import Sequence
from typing import TypeVar

from .errors import InvalidParameter

T = TypeVar("T")


def get_item_chance(chance: int, rng: random.Random | None = None) -> bool:
    """Roll a uniform integer in [0, 100] and report whether it lands within ``chance``."""
    if chance < 0 or chance > 100:
        raise InvalidParameter(f"Chance must be between 0 to 100, got {chance}")
    source = rng or random
    return source.randint(0, 100) <= chance


def get_random_item(
    items: Sequence[T], chance: int, rng: random.Random | None = None
) -> T | None:
    """
    Pick one element of ``items`` with probability ``chance`` percent.

    Returns None when the roll misses or when ``items`` is empty. The chance
    is validated even for an empty sequence.
    """
    return_item = get_item_chance(chance, rng)
    if items and return_item:
        source = rng or random
        return items[source.randint(0, len(items) - 1)]
    return None
