"""Backoff policies for bounded collection retries.

Usage
-----
>>> policy = ExponentialBackoff(randomization_factor=0.0)
>>> policy.next_delay(1)
0.5
>>> policy.next_delay(3)
1.125

"""

from __future__ import annotations

import dataclasses as dc
import random
import typing as typ

DEFAULT_MAX_ATTEMPTS = 10


@typ.runtime_checkable
class BackoffPolicy(typ.Protocol):
    """Compute the wait before the next attempt."""

    def next_delay(self, attempt: int) -> float:
        """Return seconds to wait after failed attempt number ``attempt``.

        ``attempt`` is 1-based: the delay after the first failure is
        ``next_delay(1)``.
        """
        ...


@dc.dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Randomized exponential backoff.

    Attributes
    ----------
    initial_interval
        Delay in seconds after the first failed attempt.
    multiplier
        Growth factor applied per further attempt.
    max_interval
        Upper bound for the un-randomized delay.
    randomization_factor
        Jitter ratio; the delay is drawn uniformly from
        ``[d * (1 - f), d * (1 + f)]``.

    """

    initial_interval: float = 0.5
    multiplier: float = 1.5
    max_interval: float = 60.0
    randomization_factor: float = 0.5

    def next_delay(self, attempt: int) -> float:
        """Return the jittered delay for ``attempt``."""
        exponent = max(attempt - 1, 0)
        delay = min(
            self.initial_interval * self.multiplier**exponent, self.max_interval
        )
        if not self.randomization_factor:
            return delay
        spread = delay * self.randomization_factor
        return random.uniform(delay - spread, delay + spread)  # noqa: S311


class ZeroBackoff:
    """Retry immediately; for tests and local runs."""

    def next_delay(self, attempt: int) -> float:
        """Return zero regardless of ``attempt``."""
        del attempt
        return 0.0
