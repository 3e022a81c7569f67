"""
Retry handling with exponential backoff.

Retries are local to the GraphQL transport: a RetryHandler re-runs a single
request while the raised exception is marked as retryable, waiting an
exponentially growing (and capped) delay between attempts.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from shopify_bulk.core.config import Settings
from shopify_bulk.utils.error_handler import AppException, TransportException

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Configurable retry policy.
    """

    def __init__(
        self,
        max_attempts: int = 4,
        base_delay: float = 0.5,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
    ):
        """
        Initialize the retry policy.

        Args:
            max_attempts: Maximum number of attempts, first one included
            base_delay: Delay before the first retry, in seconds
            max_delay: Upper bound for any single delay, in seconds
            exponential_base: Growth factor between consecutive delays
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

    @classmethod
    def from_settings(cls, settings: Settings, max_retries: Optional[int] = None) -> "RetryPolicy":
        """
        Build the transport policy from settings.

        Args:
            settings: Package settings
            max_retries: Retries after the first attempt, overrides the settings

        Returns:
            RetryPolicy: Configured policy
        """
        retries = settings.SHOPIFY_MAX_RETRIES if max_retries is None else max_retries
        return cls(
            max_attempts=retries + 1,
            base_delay=settings.RETRY_INITIAL_DELAY_SECONDS,
            max_delay=settings.RETRY_MAX_DELAY_SECONDS,
            exponential_base=settings.RETRY_BACKOFF_FACTOR,
        )

    def should_retry(self, exception: Exception, attempt: int) -> bool:
        """
        Decide whether the operation should be attempted again.

        Args:
            exception: Exception raised by the attempt
            attempt: Number of the attempt that failed (1-based)

        Returns:
            bool: True if it should be retried
        """
        if attempt >= self.max_attempts:
            return False

        # Unclassified exceptions are never retried
        return isinstance(exception, AppException) and exception.is_retryable

    def calculate_delay(self, attempt: int) -> float:
        """
        Compute the wait before the next attempt.

        Args:
            attempt: Number of the attempt that just failed (1-based)

        Returns:
            float: Seconds to wait
        """
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        return min(delay, self.max_delay)


class RetryHandler:
    """
    Runs an async callable under a RetryPolicy.

    Each GraphQL client owns its handler, so metrics are never shared between
    independent bulk runs.
    """

    def __init__(
        self,
        name: str,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the retry handler.

        Args:
            name: Identifier used in logs
            retry_policy: Retry policy
            sleep: Coroutine used to wait between attempts
        """
        self.name = name
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

        self.metrics = {
            "total_attempts": 0,
            "total_successes": 0,
            "total_failures": 0,
            "total_retries": 0,
        }

    async def execute(
        self, func: Callable[..., Awaitable[Any]], *args, context: Optional[Dict[str, Any]] = None, **kwargs
    ) -> Any:
        """
        Run a coroutine function with retries.

        Args:
            func: Coroutine function to run
            *args: Positional arguments
            context: Additional context for logging
            **kwargs: Keyword arguments

        Returns:
            Any: Result of the function

        Raises:
            Exception: The last exception once retries are exhausted, or the
                first non-retryable one
        """
        context = context or {}
        last_exception: Optional[Exception] = None
        start_time = time.monotonic()

        for attempt in range(1, self.retry_policy.max_attempts + 1):
            self.metrics["total_attempts"] += 1

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                last_exception = e
                self.metrics["total_failures"] += 1

                if not self.retry_policy.should_retry(e, attempt):
                    break

                delay = self.retry_policy.calculate_delay(attempt)
                self.metrics["total_retries"] += 1

                logger.warning(
                    f"{self.name} failed ({e}). Retrying in {delay:.2f}s - "
                    f"attempt {attempt + 1}/{self.retry_policy.max_attempts}",
                    extra={"delay": delay, "context": context},
                )
                await self._sleep(delay)
                continue

            self.metrics["total_successes"] += 1
            logger.debug(
                f"{self.name} succeeded in {time.monotonic() - start_time:.2f}s",
                extra={"attempt": attempt, "context": context},
            )
            return result

        if last_exception is None:
            raise TransportException(f"{self.name} failed: retries exhausted")

        if isinstance(last_exception, AppException) and last_exception.is_retryable:
            logger.error(
                f"All retry attempts failed for {self.name}",
                extra={
                    "attempts": self.retry_policy.max_attempts,
                    "last_exception": str(last_exception),
                    "context": context,
                },
            )

        raise last_exception

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return the handler metrics.

        Returns:
            Dict: Current metrics
        """
        total = self.metrics["total_attempts"]
        success_rate = (self.metrics["total_successes"] / total * 100) if total > 0 else 0

        return {
            **self.metrics,
            "success_rate": round(success_rate, 2),
            "handler_name": self.name,
        }
