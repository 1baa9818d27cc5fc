"""Timeout, retry and cancellation wrappers for awaitable operations."""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from .context import AbortSignal
from .errors import ExecutionCancelledError, ExecutionTimeoutError

logger = structlog.get_logger()

T = TypeVar("T")

RetryCallback = Callable[[Exception, int], None]


async def delay(ms: float) -> None:
    """Sleep for ``ms`` milliseconds."""
    await asyncio.sleep(max(ms, 0) / 1000.0)


async def with_timeout(
    fn: Callable[[], Awaitable[T]],
    ms: float,
    message: str = "Operation timed out",
) -> T:
    """Await ``fn()`` with a deadline of ``ms`` milliseconds.

    The pending operation is cancelled on expiry and the deadline timer is
    released as soon as either side finishes.
    """
    try:
        return await asyncio.wait_for(fn(), timeout=ms / 1000.0)
    except asyncio.TimeoutError:
        raise ExecutionTimeoutError(message, timeout_ms=ms) from None


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    retries: int = 0,
    delay: float = 0,
    on_retry: Optional[RetryCallback] = None,
) -> T:
    """Attempt ``fn()`` up to ``retries + 1`` times with a fixed ``delay`` (ms).

    ``on_retry(error, attempt)`` runs after each failed attempt that will be
    retried, before the delay. Cancellation is never retried.
    """
    attempts = max(retries, 0) + 1
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except ExecutionCancelledError:
            raise
        except Exception as e:
            if attempt >= attempts:
                raise
            logger.debug(
                "Retrying operation",
                attempt=attempt,
                max_attempts=attempts,
                error=str(e),
            )
            if on_retry is not None:
                on_retry(e, attempt)
            await asyncio.sleep(max(delay, 0) / 1000.0)


async def with_abort(
    fn: Callable[[], Awaitable[T]],
    signal: Optional[AbortSignal],
) -> T:
    """Race ``fn()`` against an abort signal.

    Raises :class:`ExecutionCancelledError` when the signal is (or becomes)
    tripped before the operation finishes; the operation is then cancelled.
    """
    if signal is None:
        return await fn()
    if signal.aborted:
        raise ExecutionCancelledError(signal.reason or "Execution was cancelled")

    work = asyncio.ensure_future(fn())
    aborted = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait({work, aborted}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        aborted.cancel()
        raise

    if work in done:
        aborted.cancel()
        return work.result()

    work.cancel()
    try:
        await work
    except (asyncio.CancelledError, Exception):
        pass
    raise ExecutionCancelledError(signal.reason or "Execution was cancelled")
