"""
Random sources for the economic model.

The model draws uniform floats in [0, 1) in a fixed order (GDP shock,
inflation shock, trade shock), so a seeded source makes a whole Phase 2
replayable.
"""

import random
import secrets
from typing import Protocol, runtime_checkable


@runtime_checkable
class RandomSource(Protocol):
    """Uniform float source in [0, 1)."""

    def random(self) -> float: ...


class SeededRandomSource:
    """Deterministic source backed by a private ``random.Random``."""

    def __init__(self, seed: int) -> None:
        self._seed = seed
        self._rng = random.Random(seed)  # noqa: S311

    @property
    def seed(self) -> int:
        return self._seed

    def random(self) -> float:
        return self._rng.random()


class SystemRandomSource:
    """OS-entropy source for production rooms."""

    def __init__(self) -> None:
        self._rng = secrets.SystemRandom()

    def random(self) -> float:
        return self._rng.random()


def create_random_source(seed: int | None = None) -> RandomSource:
    """Return a seeded source when a seed is given, otherwise an OS-backed one."""
    if seed is None:
        return SystemRandomSource()
    return SeededRandomSource(seed)
