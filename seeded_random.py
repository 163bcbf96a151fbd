from __future__ import annotations

import math
import zlib
from typing import Sequence, TypeVar

T = TypeVar("T")

MODULUS = 2147483647  # 2**31 - 1
MULTIPLIER = 16807
DEFAULT_SEED = 12345

# smallest value next() can return other than zero
_MIN_POSITIVE_DRAW = 1.0 / (MODULUS - 1)


class SeededRandom:
    """Park-Miller minimal standard generator.

    Every draw advances one shared integer state, so the sequence for a
    given seed is identical on every run. Callers that need reproducible
    output must issue draws in a fixed order.
    """

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise ValueError(f"Seed must be an integer, got {seed!r}")
        if seed <= 0:
            raise ValueError(f"Seed must be positive, got {seed}")
        if seed % MODULUS == 0:
            raise ValueError(f"Seed must not be a multiple of {MODULUS}")
        self.seed = seed
        self._state = seed % MODULUS

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> float:
        self._state = (self._state * MULTIPLIER) % MODULUS
        return (self._state - 1) / (MODULUS - 1)

    def range(self, low: float, high: float) -> float:
        return low + self.next() * (high - low)

    def int(self, low: int, high: int) -> int:
        # inclusive on both ends
        return math.floor(self.range(low, high + 1))

    def pick(self, items: Sequence[T]) -> T:
        if not items:
            raise ValueError("Cannot pick from an empty collection.")
        return items[self.int(0, len(items) - 1)]

    def gaussian(self, mean: float, std: float) -> float:
        u1 = self.next()
        u2 = self.next()
        if u1 <= 0.0:
            u1 = _MIN_POSITIVE_DRAW
        z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + z * std

    def spawn(self, key: str) -> "SeededRandom":
        """Independent sub-stream derived from this generator's seed and ``key``.

        The derived seed depends only on the original seed, never on how many
        draws have been consumed, so sub-streams can be created in any order.
        """
        return SeededRandom(derive_seed(self.seed, key))


def derive_seed(base_seed: int, key: str) -> int:
    digest = zlib.crc32(f"{base_seed}:{key}".encode("utf-8"))
    return digest % (MODULUS - 1) + 1
