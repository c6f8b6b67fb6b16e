# src/crumbline/sampling.py
"""Probabilistic gate for outbound transport.

Sampling only decides whether an assembled event is transmitted. Console
rendering and breadcrumb capture happen regardless.

``traces_sample_rate`` is validated in Settings but the timing harness does
not consult it; transaction and span events are sampled with ``sample_rate``
like every other event.
"""

import random
from collections.abc import Callable


class SamplingFilter:
    """Returns True with probability ``rate``; independent draw per call.

    Example:
        >>> SamplingFilter(1.0).should_sample()
        True
        >>> SamplingFilter(0.0).should_sample()
        False
    """

    def __init__(self, rate: float = 1.0, *, rng: Callable[[], float] = random.random) -> None:
        """Initialize the filter.

        Args:
            rate: Probability in [0, 1] that an event is kept.
            rng: Uniform [0, 1) source; injectable for tests.

        Raises:
            ValueError: If rate is outside [0, 1].
        """
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"sample rate must be within [0, 1], got {rate}")
        self._rate = rate
        self._rng = rng

    @property
    def rate(self) -> float:
        return self._rate

    def should_sample(self) -> bool:
        return self._rng() < self._rate
