"""
Retry executor for fallible async operations.

Only TransientError is retried. The delay before retry n is
base_delay_ms * n, so the schedule grows linearly: 1x, 2x, 3x...
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import RetryError, TransientError
from ..models import Attempted, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExecutor:
    """
    Re-invokes an operation on transient failure, up to the policy's budget.

    Usage:
        executor = RetryExecutor(RetryPolicy(max_attempts=3, base_delay_ms=1000))
        attempted = await executor.run(lambda: probe.exists(key), label=key)
        attempted.value, attempted.attempts
    """

    def __init__(
        self,
        policy: RetryPolicy,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._policy = policy
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        label: Optional[str] = None,
    ) -> Attempted[T]:
        """
        Run operation until it succeeds or fails terminally.

        Raises:
            RetryError: on a non-transient error, or when retries are exhausted
        """
        label = label or getattr(operation, "__name__", "operation")
        retries_left = self._policy.max_attempts
        attempt = 0

        while True:
            attempt += 1
            try:
                value = await operation()
            except TransientError as exc:
                if retries_left <= 0:
                    logger.error(
                        "%s failed after %d attempt(s), no retries left: %s",
                        label, attempt, exc
                    )
                    raise RetryError(exc, attempt, exhausted=True) from exc

                retries_left -= 1
                delay = self._policy.delay_for(attempt)
                logger.warning(
                    "%s transient error (%d retries left): %s, retrying in %.0fms",
                    label, retries_left, exc, delay * 1000
                )
                await self._sleep(delay)
            except Exception as exc:
                logger.error("%s failed (not retryable): %s", label, exc)
                raise RetryError(exc, attempt) from exc
            else:
                return Attempted(value=value, attempts=attempt)
