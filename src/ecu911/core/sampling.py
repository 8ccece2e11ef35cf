"""Weighted random sampling over closed key sets."""

from typing import Dict, Generic, Hashable, List, Mapping, Sequence, TypeVar

import numpy as np

K = TypeVar("K", bound=Hashable)


class WeightedSampler(Generic[K]):
    """Cumulative-weight sampler.

    Draws a key with probability proportional to its weight using a
    binary search over the cumulative weights. Zero-weight keys are never
    drawn. Deterministic for a given seeded generator.

    Attributes:
        keys: Candidate keys in declaration order.
        total: Sum of all weights.
    """

    def __init__(self, keys: Sequence[K], weights: Sequence[float]) -> None:
        if len(keys) != len(weights):
            raise ValueError("keys and weights must have equal length")
        if any(w < 0 for w in weights):
            raise ValueError("Weights must be non-negative")
        self.keys: List[K] = list(keys)
        self._cumulative = np.cumsum(np.asarray(weights, dtype=float))
        self.total = float(self._cumulative[-1]) if len(self.keys) else 0.0

    @classmethod
    def from_mapping(cls, weights: Mapping[K, float]) -> "WeightedSampler[K]":
        return cls(list(weights.keys()), list(weights.values()))

    @property
    def is_empty(self) -> bool:
        return self.total <= 0

    def sample(self, rng: np.random.Generator) -> K:
        """Draw one key.

        Raises:
            ValueError: If every weight is zero.
        """
        if self.is_empty:
            raise ValueError("Cannot sample from an empty weight table")
        target = rng.random() * self.total
        idx = int(np.searchsorted(self._cumulative, target, side="right"))
        return self.keys[min(idx, len(self.keys) - 1)]


def count_weights(values: Sequence[K]) -> Dict[K, float]:
    """Frequency table preserving first-seen order."""
    counts: Dict[K, float] = {}
    for value in values:
        counts[value] = counts.get(value, 0.0) + 1.0
    return counts
