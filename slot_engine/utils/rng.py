"""
Injected random sources for the slot engine.

Every randomness-driven decision in the engine reads from a source passed in by
the caller; nothing touches a module-level generator. A source only has to
expose ``next_float()`` returning a float in the half-open interval [0, 1).
"""
import random
import secrets
from typing import Iterable, List, Sequence, Tuple

from slot_engine.exceptions import RandomSourceExhausted


class RandomSource:
    """Base class for uniform random sources."""

    def next_float(self) -> float:
        raise NotImplementedError

    def next_index(self, n: int) -> int:
        """Uniform integer in [0, n). Total over [0, 1) input."""
        if n <= 0:
            raise ValueError("next_index requires a positive bound")
        return min(int(self.next_float() * n), n - 1)

    def bernoulli(self, p: float) -> bool:
        return self.next_float() < p


class SeededRandomSource(RandomSource):
    """Deterministic source for replay and simulation workers."""

    def __init__(self, seed: int):
        self.seed = seed
        self._rng = random.Random(seed)

    def next_float(self) -> float:
        return self._rng.random()


class SystemRandomSource(RandomSource):
    """Production source backed by the OS entropy pool."""

    def __init__(self):
        self._rng = secrets.SystemRandom()

    def next_float(self) -> float:
        return self._rng.random()


class ScriptedRandomSource(RandomSource):
    """
    Replays a fixed sequence of draws. Running out raises RandomSourceExhausted;
    there is no fallback to a live generator.
    """

    def __init__(self, values: Iterable[float]):
        self._values: List[float] = list(values)
        for i, value in enumerate(self._values):
            if not (0.0 <= value < 1.0):
                raise ValueError(f"Scripted value {value!r} at index {i} is outside [0, 1)")
        self._position = 0

    @property
    def consumed(self) -> int:
        return self._position

    @property
    def remaining(self) -> int:
        return len(self._values) - self._position

    def next_float(self) -> float:
        if self._position >= len(self._values):
            raise RandomSourceExhausted(
                status_message=f"Scripted random source exhausted after {self._position} draws",
                details={"draws_consumed": self._position}
            )
        value = self._values[self._position]
        self._position += 1
        return value


class RecordingRandomSource(RandomSource):
    """Wraps another source and keeps every draw so a spin can be replayed exactly."""

    def __init__(self, inner: RandomSource):
        self.inner = inner
        self.draws: List[float] = []

    def next_float(self) -> float:
        value = self.inner.next_float()
        self.draws.append(value)
        return value

    def replay(self) -> ScriptedRandomSource:
        return ScriptedRandomSource(self.draws)


def weighted_pick(rng: RandomSource, table: Sequence[Tuple[object, float]]):
    """
    Cumulative-weight selection over ``(value, weight)`` pairs.

    Each value owns the half-open slice [cum_before, cum_after) of [0, total).
    The last positive-weight value absorbs any floating point shortfall.
    """
    total = sum(weight for _, weight in table)
    if total <= 0:
        raise ValueError("weighted_pick requires a positive total weight")
    target = rng.next_float() * total
    cumulative = 0.0
    chosen = None
    for value, weight in table:
        if weight <= 0:
            continue
        cumulative += weight
        chosen = value
        if target < cumulative:
            return value
    return chosen
