"""
Fixed-delay retry for one logical fetch.

RetryPolicy:
    RetryPolicy(clock, max_retries=3, retry_delay=20.0, retryable_exceptions=...)
    await .run(operation, label="") -> T
        Call ``operation`` up to max_retries + 1 times, sleeping retry_delay
        between attempts. Raises RetriesExhaustedError once the budget is spent.

The delay is constant, not exponential. Known weakness: many clients sharing
one API key will retry in lockstep.
"""

import logging
from typing import Awaitable, Callable, Optional, Type, TypeVar

from src.domain.errors import RateLimitedError, RetriesExhaustedError, TransportError
from src.domain.ports.clock_port import IClock

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryPolicy:
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RETRY_DELAY = 20.0

    def __init__(
        self,
        clock: IClock,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        retryable_exceptions: tuple[Type[Exception], ...] = (RateLimitedError, TransportError),
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._clock = clock
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.retryable_exceptions = retryable_exceptions

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str = "",
        on_retry: Optional[Callable[[Exception, int], None]] = None,
    ) -> T:
        """Run *operation* with the fixed-delay retry budget.

        Args:
            operation: Zero-argument coroutine factory; called once per attempt.
            label:     Name used in log lines.
            on_retry:  Callback (exception, attempt number) before each wait.
        """
        name = label or getattr(operation, "__name__", "operation")
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                return await operation()
            except self.retryable_exceptions as e:
                last_exception = e
                if attempt < self.max_retries:
                    logger.warning(
                        f"Retry {attempt + 1}/{self.max_retries} for {name}: "
                        f"{type(e).__name__}: {e}. Waiting {self.retry_delay:.1f}s"
                    )
                    if on_retry:
                        on_retry(e, attempt + 1)
                    await self._clock.sleep(self.retry_delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retries failed for {name}: "
                        f"{type(e).__name__}: {e}"
                    )

        raise RetriesExhaustedError(self.max_retries + 1, last_exception)
