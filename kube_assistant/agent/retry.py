"""Bounded exponential-backoff retry for provider calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from kube_assistant.errors import ProviderRequestError

T = TypeVar("T")

HTTP_TOO_MANY_REQUESTS = 429

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_INITIAL_BACKOFF = 1.0


def is_rate_limited(exc: BaseException) -> bool:
    """Only a provider 429 is worth retrying."""
    return isinstance(exc, ProviderRequestError) and exc.status_code == HTTP_TOO_MANY_REQUESTS


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(f"Rate limited (attempt {retry_state.attempt_number}), retrying in {delay:.0f}s: {exc}")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Run an async operation under a bounded retry policy.

    The delay doubles from ``initial_backoff`` after every retryable failure and
    has no cap other than ``max_attempts``. Errors rejected by ``is_retryable``
    propagate unchanged after the attempt that raised them. When every attempt
    fails with a retryable error the last one is raised.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF
    is_retryable: Callable[[BaseException], bool] = is_rate_limited
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            sleep=self.sleep,
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.initial_backoff, exp_base=2),
            retry=retry_if_exception(self.is_retryable),
            before_sleep=_log_retry,
            reraise=True,
        )

    async def call(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await self._retrying()(operation)
