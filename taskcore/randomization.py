from __future__ import annotations

from .utils import round_half_up


UINT64_MASK = 0xFFFFFFFFFFFFFFFF
UINT64_MAX = UINT64_MASK
_OUTPUT_MULTIPLIER = 2685821657736338717


class SeededGenerator:
    """64-bit xorshift generator with a multiplicative output scramble.

    Identical seeds yield identical sequences, so every stochastic decision of a
    session can be replayed from the configured seed.
    """

    def __init__(self, seed: int) -> None:
        seed = int(seed) & UINT64_MASK
        if seed == 0:
            raise ValueError("Seed must be non-zero.")
        self._state = seed

    def next(self) -> int:
        x = self._state
        x ^= x >> 12
        x ^= (x << 25) & UINT64_MASK
        x ^= x >> 27
        self._state = x
        return (x * _OUTPUT_MULTIPLIER) & UINT64_MASK

    def next_double(self) -> float:
        return self.next() / UINT64_MAX

    def coin_flip(self) -> bool:
        return bool(self.next() & 1)

    def uniform(self, low: float, high: float) -> float:
        return low + self.next_double() * (high - low)

    def uniform_int(self, low: int, high: int) -> int:
        """Draw an integer from [low, high] inclusive, rounded to the nearest value."""
        return round_half_up(self.uniform(float(low), float(high)))


def derive_seed(seed: int, salt: int) -> int:
    """Return a non-zero seed for an independent stream derived from ``seed``."""
    derived = (int(seed) ^ int(salt)) & UINT64_MASK
    return derived or int(salt) & UINT64_MASK or 1
