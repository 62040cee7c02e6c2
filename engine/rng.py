# engine/rng.py
"""Seeded randomness used to build question variants.

Every caller gets its own stream from `seeded_random`; nothing here keeps
module-level state, so concurrent instantiations never share a generator.
"""

from __future__ import annotations

import math
from datetime import UTC, date, datetime
from typing import Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_GOLDEN_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def seeded_random(seed: int) -> Callable[[], float]:
    """Return a Mulberry32 stream of floats in [0, 1) for `seed`."""
    state = int(seed) & _MASK32

    def next_float() -> float:
        nonlocal state
        state = (state + _GOLDEN_INCREMENT) & _MASK32
        t = state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_POW_32

    return next_float


def random_in_range(min_value: float, max_value: float, step: float, rng: Callable[[], float]) -> float:
    """
    Draw a value on the lattice min, min+step, ... that stays within [min, max].

    The number of steps is floored, so when (max - min) is not a multiple of
    `step` the last partial step can never be drawn.
    """
    if step <= 0:
        raise ValueError("step must be positive")
    steps = math.floor((max_value - min_value) / step)
    k = math.floor(rng() * (steps + 1))
    return min_value + k * step


def round_to(value: float, decimals: int) -> float:
    # half-up, like Math.round, not Python's banker's rounding
    factor = 10**decimals
    return math.floor(value * factor + 0.5) / factor


def utc_today() -> date:
    return datetime.now(UTC).date()


def create_seed(question_id: str, date_string: Optional[str] = None) -> int:
    """
    Daily seed for a question: everybody loading `question_id` on the same UTC
    day gets the same variant, whatever the server's time zone.
    """
    text = question_id + (date_string or utc_today().isoformat())
    h = 0
    for ch in text:
        h = ((h << 5) - h + ord(ch)) & _MASK32
    if h >= 0x80000000:
        h -= _TWO_POW_32
    return abs(h)


def shuffle_with_seed(items: Sequence[T], seed: int) -> List[T]:
    rng = seeded_random(seed)
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = math.floor(rng() * (i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
