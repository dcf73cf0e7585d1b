"""
Deterministic Game Mechanics.

Provides dice rolling, fair shuffling, and draw-without-replacement decks
with injectable RNG for reproducibility.
"""

import numpy as np
from typing import Any, Dict, List


class DiceRoller:
    """Deterministic dice roller with injectable RNG."""

    def __init__(self, seed: int = None):
        self.rng = np.random.default_rng(seed)

    def roll(self, num_dice: int, die_size: int) -> int:
        """Roll multiple dice."""
        return int(sum(self.rng.integers(1, die_size + 1) for _ in range(num_dice)))

    def d6(self) -> int:
        """Roll a d6."""
        return int(self.rng.integers(1, 7))

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        return float(self.rng.random())

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in [low, high]."""
        return int(self.rng.integers(low, high + 1))

    def shuffle(self, items: List[Any]) -> List[Any]:
        """Shuffle in place with the game generator; returns the list."""
        self.rng.shuffle(items)
        return items


class Deck:
    """
    Draw-without-replacement deck.

    When the deck runs out it is refilled with the canonical multiset and
    reshuffled from the same roller, so the card distribution across a whole
    run is exactly the canonical one.
    """

    def __init__(self, name: str, canonical: List[Any], roller: DiceRoller):
        self.name = name
        self.canonical = list(canonical)
        self.roller = roller
        self.cards: List[Any] = []
        self.reshuffles = 0
        self.drawn = 0
        self._refill(initial=True)

    def _refill(self, initial: bool = False):
        self.cards = self.roller.shuffle(list(self.canonical))
        if not initial:
            self.reshuffles += 1

    def draw(self) -> Any:
        """Draw the top card, reshuffling first if the deck is empty."""
        if not self.cards:
            self._refill()
        self.drawn += 1
        return self.cards.pop()

    def remaining(self) -> int:
        return len(self.cards)

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "remaining": len(self.cards),
            "drawn": self.drawn,
            "reshuffles": self.reshuffles,
        }


def round_half_up(value: float) -> int:
    """Round to nearest integer with halves rounded away from zero."""
    if value >= 0:
        return int(np.floor(value + 0.5))
    return -int(np.floor(-value + 0.5))


def ceil_int(value: float) -> int:
    """Ceiling that tolerates float noise on exact integers (e.g. 0.1 * 30)."""
    return int(np.ceil(round(value, 9)))


def floor_int(value: float) -> int:
    """Floor that tolerates float noise on exact integers (e.g. 90 * 0.7)."""
    return int(np.floor(round(value, 9)))
