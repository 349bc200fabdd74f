"""Tests for the retry policy."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from kube_assistant.agent.retry import RetryPolicy, is_rate_limited
from kube_assistant.errors import CompletionProtocolError, ProviderConnectionError, ProviderRequestError


@pytest.fixture
def sleep():
    """Sleep stub so backoff does not slow the tests down."""
    return AsyncMock()


def test_is_rate_limited():
    assert is_rate_limited(ProviderRequestError(429, "Rate limit reached"))
    assert not is_rate_limited(ProviderRequestError(500, "Internal error"))
    assert not is_rate_limited(ProviderConnectionError("refused"))
    assert not is_rate_limited(asyncio.CancelledError())


@pytest.mark.asyncio
async def test_permanent_rate_limit_makes_exactly_ten_attempts(sleep):
    """A provider that always answers 429 is tried ten times, then its error surfaces."""
    error = ProviderRequestError(429, "Rate limit reached")
    operation = AsyncMock(side_effect=error)

    with pytest.raises(ProviderRequestError) as exc_info:
        await RetryPolicy(sleep=sleep).call(operation)

    assert exc_info.value is error
    assert operation.await_count == 10
    assert sleep.await_count == 9


@pytest.mark.asyncio
async def test_backoff_doubles_from_one_second(sleep):
    operation = AsyncMock(side_effect=ProviderRequestError(429, "slow down"))

    with pytest.raises(ProviderRequestError):
        await RetryPolicy(sleep=sleep).call(operation)

    delays = [c.args[0] for c in sleep.await_args_list]
    assert delays == [1, 2, 4, 8, 16, 32, 64, 128, 256]


@pytest.mark.asyncio
async def test_fatal_error_stops_after_one_attempt(sleep):
    error = ProviderRequestError(401, "Incorrect API key provided")
    operation = AsyncMock(side_effect=error)

    with pytest.raises(ProviderRequestError) as exc_info:
        await RetryPolicy(sleep=sleep).call(operation)

    assert exc_info.value is error
    assert operation.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_protocol_error_is_not_retried(sleep):
    operation = AsyncMock(side_effect=CompletionProtocolError(2))

    with pytest.raises(CompletionProtocolError, match="received: 2"):
        await RetryPolicy(sleep=sleep).call(operation)

    assert operation.await_count == 1


@pytest.mark.asyncio
async def test_success_returns_without_using_remaining_attempts(sleep):
    operation = AsyncMock(side_effect=[ProviderRequestError(429, "slow down"), "kind: Pod"])

    result = await RetryPolicy(sleep=sleep).call(operation)

    assert result == "kind: Pod"
    assert operation.await_count == 2
    sleep.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_custom_predicate_and_attempts(sleep):
    """The classification predicate and the ceiling are injectable."""
    policy = RetryPolicy(max_attempts=3, initial_backoff=0.5, is_retryable=lambda e: isinstance(e, ValueError), sleep=sleep)
    operation = AsyncMock(side_effect=ValueError("flaky"))

    with pytest.raises(ValueError):
        await policy.call(operation)

    assert operation.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]


@pytest.mark.asyncio
async def test_cancellation_is_not_retried(sleep):
    operation = AsyncMock(side_effect=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await RetryPolicy(sleep=sleep).call(operation)

    assert operation.await_count == 1


@pytest.mark.asyncio
async def test_backoff_sleep_is_interruptible():
    """Cancelling the caller during a backoff wait aborts the retry loop."""
    sleeping = asyncio.Event()

    async def long_sleep(_delay: float) -> None:
        sleeping.set()
        await asyncio.sleep(3600)

    operation = AsyncMock(side_effect=ProviderRequestError(429, "slow down"))
    task = asyncio.create_task(RetryPolicy(sleep=long_sleep).call(operation))

    await asyncio.wait_for(sleeping.wait(), timeout=5)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert operation.await_count == 1
