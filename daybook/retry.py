"""Retry policy for calls that cross the network boundary.

Only backend I/O (fetch, upsert, delete, auth) is wrapped. Aggregation
runs on in-memory data and has nothing to retry.
"""

import functools
import logging
import random
import time
from typing import Any, Callable, Optional, TypeVar

from daybook.errors import BackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Exponential backoff with randomized jitter.

    The delay before attempt ``n + 1`` is
    ``base_delay * backoff ** (n - 1)`` scaled by a random factor in
    ``[1 - jitter, 1 + jitter]``.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        backoff: float = 2.0,
        jitter: float = 0.25,
        retry_on: tuple[type[BaseException], ...] = (BackendError,),
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the policy.

        Args:
            max_attempts: Total attempts including the first call.
            base_delay: Delay in seconds before the first retry.
            backoff: Multiplier applied to the delay after each retry.
            jitter: Relative random spread of each delay (0 disables).
            retry_on: Exception types that trigger a retry.
            sleep: Sleep function (injectable for tests).
            rng: Random source for jitter.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if base_delay < 0 or backoff < 1 or not 0 <= jitter <= 1:
            raise ValueError("Invalid retry delay settings")

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.backoff = backoff
        self.jitter = jitter
        self.retry_on = retry_on
        self._sleep = sleep
        self._rng = rng or random.Random()

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        delay = self.base_delay * self.backoff ** (attempt - 1)
        if self.jitter:
            delay *= 1 + self._rng.uniform(-self.jitter, self.jitter)
        return max(0.0, delay)

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``fn`` under this policy.

        Raises:
            The last exception once all attempts are exhausted, or any
            exception not listed in ``retry_on`` immediately.
        """
        attempt = 1
        while True:
            try:
                return fn(*args, **kwargs)
            except self.retry_on as e:
                if attempt >= self.max_attempts:
                    logger.error(
                        "%s failed after %d attempt(s): %s",
                        getattr(fn, "__name__", fn), attempt, e,
                    )
                    raise
                wait = self.delay(attempt)
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                    getattr(fn, "__name__", fn), attempt, self.max_attempts, wait, e,
                )
                self._sleep(wait)
                attempt += 1

    def __call__(self, fn: Callable[..., T]) -> Callable[..., T]:
        """Use the policy as a decorator."""

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return self.call(fn, *args, **kwargs)

        return wrapper
