"""Tests for weighted sampling."""

import numpy as np
import pytest

from ecu911.core.sampling import WeightedSampler, count_weights


class TestWeightedSampler:
    """Test cumulative-weight sampling."""

    def test_zero_weight_never_drawn(self):
        """Keys with zero weight are never sampled."""
        sampler = WeightedSampler(["a", "b", "c"], [1.0, 0.0, 1.0])
        rng = np.random.default_rng(1)
        draws = {sampler.sample(rng) for _ in range(500)}
        assert draws == {"a", "c"}

    def test_deterministic_under_seed(self):
        """Same seed, same sequence."""
        sampler = WeightedSampler.from_mapping({"x": 3, "y": 1, "z": 6})
        rng_a, rng_b = np.random.default_rng(9), np.random.default_rng(9)
        assert [sampler.sample(rng_a) for _ in range(50)] == [sampler.sample(rng_b) for _ in range(50)]

    def test_proportions(self):
        """Frequencies follow the weights."""
        sampler = WeightedSampler(["heavy", "light"], [9, 1])
        rng = np.random.default_rng(123)
        draws = [sampler.sample(rng) for _ in range(5000)]
        assert draws.count("heavy") / len(draws) == pytest.approx(0.9, abs=0.03)

    def test_empty_raises(self):
        """All-zero weights cannot be sampled."""
        sampler = WeightedSampler(["a"], [0])
        assert sampler.is_empty
        with pytest.raises(ValueError):
            sampler.sample(np.random.default_rng(0))

    def test_invalid_input(self):
        """Mismatched lengths and negative weights are rejected."""
        with pytest.raises(ValueError):
            WeightedSampler(["a", "b"], [1])
        with pytest.raises(ValueError):
            WeightedSampler(["a"], [-1])


def test_count_weights_preserves_first_seen_order():
    """Frequencies are keyed in first-seen order."""
    weights = count_weights(["b", "a", "b", "c", "b"])
    assert list(weights) == ["b", "a", "c"]
    assert weights == {"b": 3.0, "a": 1.0, "c": 1.0}
