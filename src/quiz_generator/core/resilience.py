"""
Retry and timeout primitives for async operations.

retry_with_backoff only retries raised exceptions. An operation that
*returns* an error envelope is considered to have completed, so provider
errors reported in the envelope are never retried here.
"""
import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from quiz_generator.utils.errors import OperationTimeoutError, RetryExhaustedError
from quiz_generator.utils.observability import Observability

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before retrying after the given (1-based) failed attempt."""
    return base_delay * 2 ** (attempt - 1)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    operation_name: Optional[str] = None,
    observability: Optional[Observability] = None,
    sleep: Sleep = asyncio.sleep
) -> T:
    """
    Await operation() until it succeeds or max_attempts is reached.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt.
        max_attempts: Total number of attempts (not retries).
        base_delay: Delay in seconds after the first failure; doubles each time.
        operation_name: Label used in log lines.
        observability: Where retries are logged.
        sleep: Awaitable sleep function (injectable for tests).

    Returns:
        The first successful result of operation().

    Raises:
        The last exception raised by operation() once attempts are exhausted.
    """
    obs = observability or Observability()
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e

            if attempt == max_attempts:
                obs.error(
                    "Max retry attempts reached",
                    operation=operation_name,
                    attempts=max_attempts,
                    error=str(e)
                )
                break

            delay = backoff_delay(attempt, base_delay)
            obs.warning(
                "Operation failed, retrying",
                operation=operation_name,
                attempt=attempt,
                max_attempts=max_attempts,
                delay=delay,
                error=str(e)
            )
            await sleep(delay)

    if last_error is None:
        raise RetryExhaustedError(context={"operation": operation_name, "attempts": max_attempts})
    raise last_error


def _discard_late_result(task: "asyncio.Future[Any]") -> None:
    # Retrieve the outcome so a late failure is not reported as never retrieved.
    if not task.cancelled():
        task.exception()


async def with_timeout(
    awaitable: Awaitable[T],
    timeout: float,
    message: str = "Operation timed out"
) -> T:
    """
    Race awaitable against a timer of `timeout` seconds.

    The underlying task is not cancelled when the timer wins; it keeps running
    and its eventual result is discarded.

    Raises:
        OperationTimeoutError: If the timer fires first.
    """
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if task in done:
        return task.result()

    task.add_done_callback(_discard_late_result)
    raise OperationTimeoutError(message, {"timeout_seconds": timeout})
