# src/careleo_analytics/rng.py
"""
Deterministic pseudo-random sequences built on a linear-congruential
recurrence. State is an integer so sequences never drift between runs.
"""

from __future__ import annotations

import re
from typing import Sequence, TypeVar

from . import config

T = TypeVar("T")


class SeededRandom:
    """Reproducible generator of floats in [0, 1)."""

    def __init__(self, seed: int) -> None:
        self.seed = int(seed)
        self._state = int(seed)

    def random(self) -> float:
        self._state = (
            self._state * config.LCG_MULTIPLIER + config.LCG_INCREMENT
        ) % config.LCG_MODULUS
        return self._state / config.LCG_MODULUS

    def randint(self, low: int, high: int) -> int:
        """Integer in [low, high], both ends inclusive."""
        return int(self.random() * (high - low + 1)) + low

    def uniform(self, low: float, high: float) -> float:
        return low + self.random() * (high - low)

    def choice(self, options: Sequence[T]) -> T:
        if not options:
            raise ValueError("Cannot choose from an empty sequence.")
        return options[int(self.random() * len(options))]


def member_seed(member_id: str) -> int:
    """
    Map a member identifier onto a stable integer seed.

    ``M0042`` seeds with 42; identifiers without digits fall back to the sum
    of their character codes modulo 10000.
    """
    digits = re.sub(r"\D", "", member_id or "")
    if digits:
        return int(digits)
    return sum(ord(ch) for ch in member_id or "") % 10000


def jitter(seed: int, span: float) -> float:
    """First draw of a fresh generator, centred on zero: [-span/2, span/2)."""
    return (SeededRandom(seed).random() - 0.5) * span
