from __future__ import annotations

import logging
import math
from typing import Protocol, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_TWO_32 = 4294967296.0


def _to_int32(value: int) -> int:
    value &= _MASK32
    return value - 0x100000000 if value & 0x80000000 else value


def hash_seed(seed: str) -> int:
    """Fold a seed string into a non-negative 32-bit value.

    Iterates UTF-16 code units with ``h = h * 31 + unit`` wrapped to signed
    32 bits, then takes the absolute value. Strings containing characters
    outside the BMP hash their surrogate pairs, so browser clients derive the
    same state from the same seed.
    """
    data = seed.encode("utf-16-le", "surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = _to_int32((h << 5) - h + unit)
    return abs(h)


class DiceSource(Protocol):
    """The draws the game engines make against an RNG.

    SeededRNG is the production implementation; tests substitute scripted
    sources to pin exact rolls.
    """

    def next(self) -> float: ...

    def next_int(self, min_value: int, max_value: int) -> int: ...

    def roll_d20(self) -> int: ...

    def roll_dice(self, count: int, sides: int) -> int: ...

    def pick(self, items: Sequence[T]) -> T: ...


class SeededRNG:
    """Deterministic xorshift32 generator seeded from an opaque string.

    For a fixed seed the sequence of draws is fully determined, which lets the
    server replay and audit any run from its seed and the ordered list of
    player actions. Not suitable for anything security sensitive.

    Usage:
        rng = SeededRNG("3f9a...")
        rng.roll_d20()         # 1..20
        rng.roll_dice(2, 6)    # 2..12
        rng.pick(["a", "b"])
    """

    def __init__(self, seed: str) -> None:
        if not isinstance(seed, str) or not seed:
            raise ValueError("SeededRNG requires a non-empty seed string")
        state = hash_seed(seed) & _MASK32
        if state == 0:
            state = 1
        self._state = state
        logger.debug("SeededRNG initialised (state=%d)", self.state)

    @classmethod
    def from_state(cls, state: int) -> "SeededRNG":
        """Resume a generator from a previously exported :attr:`state`."""
        rng = cls.__new__(cls)
        state &= _MASK32
        rng._state = state or 1
        return rng

    @property
    def state(self) -> int:
        """Current internal state as a signed 32-bit integer."""
        return _to_int32(self._state)

    def next(self) -> float:
        """Return the next float in [0, 1)."""
        s = self._state
        s = (s ^ (s << 13)) & _MASK32
        s ^= s >> 17
        s = (s ^ (s << 5)) & _MASK32
        self._state = s
        return s / _TWO_32

    def next_int(self, min_value: int, max_value: int) -> int:
        """Return an integer in [min_value, max_value)."""
        return math.floor(self.next() * (max_value - min_value)) + min_value

    def roll_d20(self) -> int:
        return self.next_int(1, 21)

    def roll_dice(self, count: int, sides: int) -> int:
        """Sum ``count`` rolls of a ``sides``-sided die."""
        total = 0
        for _ in range(count):
            total += self.next_int(1, sides + 1)
        return total

    def pick(self, items: Sequence[T]) -> T:
        if not items:
            raise IndexError("Cannot pick from an empty sequence")
        return items[self.next_int(0, len(items))]

    def __repr__(self) -> str:
        return f"SeededRNG(state={self.state})"


__all__ = ["DiceSource", "SeededRNG", "hash_seed"]
