"""
Retry policy for task-queue units: bounded attempts with jittered exponential
backoff.
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from localbox.config.defaults import RETRY_DEFAULTS
from localbox.exceptions import NotFoundError, ProvisioningError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors a retry can never fix.
NON_RETRYABLE: Tuple[Type[BaseException], ...] = (NotFoundError, ProvisioningError)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = RETRY_DEFAULTS.max_attempts
    min_timeout_s: float = RETRY_DEFAULTS.min_timeout_s
    max_timeout_s: float = RETRY_DEFAULTS.max_timeout_s
    factor: float = RETRY_DEFAULTS.factor
    randomize: bool = RETRY_DEFAULTS.randomize

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt: int, jitter: Callable[[], float] = random.random) -> float:
        """Delay before retrying after failed attempt number ``attempt`` (1-indexed).

        The exponential base is capped at ``max_timeout_s``; with
        ``randomize`` it is scaled by a factor drawn from [1, 2) and capped
        again.
        """
        base = min(self.max_timeout_s, self.min_timeout_s * self.factor ** max(attempt - 1, 0))
        if self.randomize:
            base = min(self.max_timeout_s, base * (1 + jitter()))
        return base


async def run_with_retry(
    func: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    name: str = "task",
    non_retryable: Tuple[Type[BaseException], ...] = NON_RETRYABLE,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``func`` until it succeeds or the policy's attempts are used up.

    Raises:
        The last error raised by ``func``; non-retryable errors immediately.
    """
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return await func()
        except non_retryable:
            raise
        except Exception as e:
            if attempt >= policy.max_attempts:
                logger.error(f"{name} failed after {attempt} attempt(s): {e}")
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                f"{name} attempt {attempt}/{policy.max_attempts} failed: {e}; "
                f"retrying in {delay:.2f}s"
            )
            await sleep(delay)
            attempt += 1
