import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from orderflow.shared.retry import ExponentialBackoffRetry, FixedDelayRetry


class Flaky:
    def __init__(self, failures, exc=ConnectionError("down"), result="ok"):
        self.failures = failures
        self.exc = exc
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return self.result


@pytest.mark.asyncio
async def test_fixed_delay_succeeds_after_transient_failures():
    func = Flaky(failures=2)
    with patch("orderflow.shared.retry.base.asyncio.sleep", new=AsyncMock()) as sleep:
        result = await FixedDelayRetry(max_attempts=3, delay=1.0).execute(func)

    assert result == "ok"
    assert func.calls == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 1.0]


@pytest.mark.asyncio
async def test_exhausted_retries_reraise_last_error():
    func = Flaky(failures=10)
    with patch("orderflow.shared.retry.base.asyncio.sleep", new=AsyncMock()) as sleep:
        with pytest.raises(ConnectionError):
            await FixedDelayRetry(max_attempts=3, delay=1.0).execute(func)

    assert func.calls == 3
    # No sleep after the final attempt
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_non_retryable_error_propagates_immediately():
    func = Flaky(failures=1, exc=KeyError("bug"))
    policy = FixedDelayRetry(max_attempts=3, delay=1.0, retry_on=(ConnectionError,))
    with patch("orderflow.shared.retry.base.asyncio.sleep", new=AsyncMock()) as sleep:
        with pytest.raises(KeyError):
            await policy.execute(func)

    assert func.calls == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancellation_during_sleep_propagates():
    func = Flaky(failures=10)
    policy = FixedDelayRetry(max_attempts=3, delay=10.0)

    task = asyncio.create_task(policy.execute(func))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert func.calls == 1


def test_exponential_backoff_delays_are_capped():
    policy = ExponentialBackoffRetry(max_attempts=6, base_delay=0.5, max_delay=3.0)
    assert [policy.compute_delay(a) for a in range(1, 6)] == [0.5, 1.0, 2.0, 3.0, 3.0]


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        FixedDelayRetry(max_attempts=0)
