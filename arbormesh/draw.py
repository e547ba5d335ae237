"""
Deterministic sources of uniform random draws.

The generator never seeds or touches global randomness. Every generation
call receives its own draw source and only consumes it through `random()`,
so identical (settings, seed) pairs always replay the same draws.
"""

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

import numpy as np

SEED_LIMIT = 2**64


@runtime_checkable
class DrawSource(Protocol):
    """Anything producing uniform floats in [0, 1)."""

    def random(self) -> float: ...


def make_draw_source(seed: int) -> np.random.Generator:
    """
    Build the default draw source for a 64-bit seed.

    Uses numpy's PCG64 generator, whose stream depends only on the seed and
    the number of draws taken.
    """
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
        raise ValueError(f"Seed must be an integer, got {type(seed).__name__}")
    if not 0 <= int(seed) < SEED_LIMIT:
        raise ValueError("Seed must lie in [0, 2**64)")
    return np.random.default_rng(int(seed))


class SequenceDrawSource:
    """
    Replays a fixed sequence of draws, wrapping around at the end.

    Useful in tests to pin every random decision of the generator.
    """

    def __init__(self, values: Iterable[float]) -> None:
        self.values = tuple(float(v) for v in values)
        if not self.values:
            raise ValueError("SequenceDrawSource needs at least one value")
        if any(not 0.0 <= v < 1.0 for v in self.values):
            raise ValueError("Draw values must lie in [0, 1)")
        self.draws = 0

    def random(self) -> float:
        value = self.values[self.draws % len(self.values)]
        self.draws += 1
        return value
