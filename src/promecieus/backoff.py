"""Reconnect backoff policy.

Pure functions of the previous delay: no timers, no clocks. The connection
manager owns the current delay and asks for the next one after each failure.

Schedule from the base: 250ms → 500ms → 1s → 2s → 4s → 8s → 10s (capped)
"""

from dataclasses import dataclass

BASE_DELAY_MS = 250
MAX_DELAY_MS = 10_000
MULTIPLIER = 2.0


def next_delay(
    previous_ms: int,
    *,
    max_ms: int = MAX_DELAY_MS,
    multiplier: float = MULTIPLIER,
) -> int:
    """Return the delay to use after one more consecutive failure.

    Args:
        previous_ms: Delay used for the last retry
        max_ms: Upper bound for any delay
        multiplier: Growth factor per failure

    Returns:
        ``min(previous_ms * multiplier, max_ms)`` as whole milliseconds
    """
    return min(int(previous_ms * multiplier), max_ms)


@dataclass(frozen=True)
class Backoff:
    """Backoff policy bound to configured base, cap and multiplier."""

    base_ms: int = BASE_DELAY_MS
    max_ms: int = MAX_DELAY_MS
    multiplier: float = MULTIPLIER

    def next(self, previous_ms: int) -> int:
        """Next delay after ``previous_ms``."""
        return next_delay(previous_ms, max_ms=self.max_ms, multiplier=self.multiplier)

    def delay_after(self, failures: int) -> int:
        """Delay scheduled after ``failures`` consecutive failures from the base."""
        delay = min(self.base_ms, self.max_ms)
        for _ in range(failures):
            delay = self.next(delay)
        return delay
