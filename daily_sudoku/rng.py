from __future__ import annotations

import math
from datetime import date
from typing import List, TypeVar

T = TypeVar("T")

MODULUS = 2147483647  # 2^31 - 1
MULTIPLIER = 16807


def parse_date_key(date_key: str) -> date:
    """Parse a YYYY-MM-DD key. Raises ValueError for anything else."""
    try:
        parsed = date.fromisoformat(str(date_key).strip())
    except ValueError:
        raise ValueError(f"Invalid date key '{date_key}', expected YYYY-MM-DD")
    if parsed.isoformat() != str(date_key).strip():
        raise ValueError(f"Invalid date key '{date_key}', expected YYYY-MM-DD")
    return parsed


def seed_from_date(date_key: str) -> int:
    d = parse_date_key(date_key)
    return d.year * 10000 + d.month * 100 + d.day


class SeededRandom:
    """
    Park-Miller linear congruential generator.
    Same seed -> same sequence; one instance per generation call.
    """

    def __init__(self, seed: int):
        self.seed = seed
        self._state = seed % MODULUS

    def next(self) -> float:
        self._state = (self._state * MULTIPLIER) % MODULUS
        return (self._state - 1) / (MODULUS - 1)

    def randint_below(self, n: int) -> int:
        return math.floor(self.next() * n)

    def shuffle(self, items: List[T]) -> List[T]:
        """In-place Fisher-Yates; returns the same list for chaining."""
        for i in range(len(items) - 1, 0, -1):
            j = self.randint_below(i + 1)
            items[i], items[j] = items[j], items[i]
        return items
