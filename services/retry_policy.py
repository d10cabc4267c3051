"""
Retry policy shared by the Brave search client and the SiliconFlow LLM client.

The policy is a plain value object; `retrying()` turns it into a tenacity
AsyncRetrying controller so call sites read like:

    async for attempt in policy.retrying():
        with attempt:
            data = await self._fetch(query, count)
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import aiohttp
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from core.exceptions import RateLimitError, UpstreamServerError, UpstreamTimeoutError

logger = logging.getLogger(__name__)


def is_retryable(exc: BaseException) -> bool:
    """Rate limits, 5xx, timeouts and transport failures are worth another attempt."""
    return isinstance(
        exc,
        (
            RateLimitError,
            UpstreamServerError,
            UpstreamTimeoutError,
            aiohttp.ClientError,
            asyncio.TimeoutError,
        ),
    )


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 5.0
    multiplier: float = 2.0
    max_delay: float = 30.0
    rate_limit_delay: float = 10.0
    rate_limit_max_delay: float = 60.0
    retryable: Callable[[BaseException], bool] = is_retryable

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def compute_delay(self, attempt: int, error: Optional[BaseException] = None) -> float:
        """Delay before the attempt following `attempt` (1-based)."""
        if isinstance(error, RateLimitError):
            return min(self.rate_limit_delay * self.multiplier ** (attempt - 1), self.rate_limit_max_delay)
        return min(self.base_delay * self.multiplier ** attempt, self.max_delay)

    def _wait(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        return self.compute_delay(retry_state.attempt_number, error)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            "upstream_retry",
            extra={
                "attempt": retry_state.attempt_number,
                "delay": delay,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception(self.retryable),
            before_sleep=self._before_sleep,
            reraise=True,
        )
