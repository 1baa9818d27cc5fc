"""Test timeout, retry and abort wrappers."""

import asyncio

import pytest
from unittest.mock import Mock

from nodeflow.executor.context import AbortSignal
from nodeflow.executor.errors import ExecutionCancelledError, ExecutionTimeoutError
from nodeflow.executor.retry import delay, with_abort, with_retry, with_timeout


@pytest.mark.unit
class TestWithTimeout:
    """Test deadline enforcement."""

    @pytest.mark.asyncio
    async def test_returns_result_before_deadline(self):
        async def fast():
            return "done"

        assert await with_timeout(fast, 1000) == "done"

    @pytest.mark.asyncio
    async def test_raises_on_expiry(self):
        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(ExecutionTimeoutError) as exc_info:
            await with_timeout(slow, 10, "too slow")

        assert exc_info.value.message == "too slow"
        assert exc_info.value.details["timeout_ms"] == 10
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_propagates_errors(self):
        async def broken():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await with_timeout(broken, 1000)


@pytest.mark.unit
class TestWithRetry:
    """Test retry with fixed delay."""

    @pytest.mark.asyncio
    async def test_succeeds_after_failures(self):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("unavailable")
            return "ok"

        on_retry = Mock()
        result = await with_retry(flaky, retries=2, delay=0, on_retry=on_retry)

        assert result == "ok"
        assert len(attempts) == 3
        assert on_retry.call_count == 2
        error, attempt = on_retry.call_args_list[0].args
        assert isinstance(error, ConnectionError)
        assert attempt == 1

    @pytest.mark.asyncio
    async def test_raises_last_error_when_exhausted(self):
        calls = []

        async def always_fails():
            calls.append(1)
            raise ConnectionError(f"attempt {len(calls)}")

        with pytest.raises(ConnectionError, match="attempt 2"):
            await with_retry(always_fails, retries=1, delay=0)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_zero_retries_is_single_attempt(self):
        calls = []

        async def fails():
            calls.append(1)
            raise RuntimeError("no")

        with pytest.raises(RuntimeError):
            await with_retry(fails)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cancellation_is_not_retried(self):
        calls = []

        async def cancelled():
            calls.append(1)
            raise ExecutionCancelledError()

        with pytest.raises(ExecutionCancelledError):
            await with_retry(cancelled, retries=3, delay=0)
        assert len(calls) == 1


@pytest.mark.unit
class TestWithAbort:
    """Test cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_without_signal_runs_normally(self):
        async def work():
            return 1

        assert await with_abort(work, None) == 1

    @pytest.mark.asyncio
    async def test_already_aborted_never_starts(self):
        signal = AbortSignal()
        signal.abort("stopped by user")
        started = []

        async def work():
            started.append(1)

        with pytest.raises(ExecutionCancelledError, match="stopped by user"):
            await with_abort(work, signal)
        assert started == []

    @pytest.mark.asyncio
    async def test_abort_during_operation_cancels_it(self):
        signal = AbortSignal()
        cancelled = asyncio.Event()

        async def work():
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def trip():
            await asyncio.sleep(0.01)
            signal.abort()

        asyncio.ensure_future(trip())
        with pytest.raises(ExecutionCancelledError):
            await with_abort(work, signal)
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_first_abort_reason_wins(self):
        signal = AbortSignal()
        signal.abort("first")
        signal.abort("second")
        assert signal.aborted is True
        assert signal.reason == "first"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delay_accepts_negative_values():
    """Test that negative delays do not raise."""
    await delay(-5)
    await delay(1)
