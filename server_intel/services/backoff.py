"""Retry delay policy."""

import random


class ExponentialBackoff:
    """Exponential backoff with jitter for retrying storage loads.

    Unlike a request rate limiter, there is no zero-delay first call: the
    caller has already failed once, so the first `next_delay()` is the
    initial delay and each later one multiplies it by `backoff_factor`, up
    to `max_delay`. Jitter is symmetric, +/- `jitter_factor`.
    `CacheOrchestrator.load_from_storage` builds one per load and never
    calls `reset`, so a load gets at most `load_retries` growing waits.
    """

    def __init__(
        self,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        backoff_factor: float = 2.0,
        jitter_factor: float = 0.1,
    ):
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter_factor = jitter_factor
        self._current_delay = initial_delay
        self._attempts = 0

    def reset(self) -> None:
        """Reset delay after a successful attempt."""
        self._current_delay = self.initial_delay
        self._attempts = 0

    def next_delay(self) -> float:
        """Delay before the next attempt: initial, then x factor, capped, +/- jitter."""
        if self._attempts > 0:
            self._current_delay = min(self._current_delay * self.backoff_factor, self.max_delay)
        self._attempts += 1
        jitter = self._current_delay * self.jitter_factor * (2 * random.random() - 1)
        return max(0.0, self._current_delay + jitter)

    @property
    def attempts(self) -> int:
        return self._attempts
