# tests/unit/capture/test_sampling.py
"""Tests for SamplingFilter."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from crumbline.sampling import SamplingFilter


class TestSamplingFilter:
    def test_zero_rate_never_samples(self) -> None:
        sampler = SamplingFilter(0.0)
        assert not any(sampler.should_sample() for _ in range(1000))

    def test_full_rate_always_samples(self) -> None:
        sampler = SamplingFilter(1.0)
        assert all(sampler.should_sample() for _ in range(1000))

    @pytest.mark.parametrize("rate", [-0.1, 1.5])
    def test_out_of_range_rate_rejected(self, rate: float) -> None:
        with pytest.raises(ValueError, match="sample rate"):
            SamplingFilter(rate)

    @given(rate=st.floats(min_value=0.0, max_value=1.0), draw=st.floats(min_value=0.0, max_value=1.0, exclude_max=True))
    def test_decision_is_draw_below_rate(self, rate: float, draw: float) -> None:
        sampler = SamplingFilter(rate, rng=lambda: draw)
        assert sampler.should_sample() is (draw < rate)

    def test_draws_are_independent_per_call(self) -> None:
        draws = iter([0.1, 0.9, 0.2])
        sampler = SamplingFilter(0.5, rng=lambda: next(draws))
        assert [sampler.should_sample() for _ in range(3)] == [True, False, True]
