from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ServiceUnavailableError(RuntimeError):
    pass


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay_ms: int = 1000,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    retry_if: Callable[[Exception], bool] | None = None,
) -> T:
    """Run ``operation`` with exponential backoff.

    After failed attempt ``n`` the helper waits ``initial_delay_ms * 2**(n-1)``
    milliseconds (1x, 2x, 4x, ...) before trying again. Once ``max_attempts``
    attempts have failed, the last error is raised.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        sleep: Awaitable sleep taking seconds. Injected by tests.
        retry_if: Optional predicate; an error it rejects is raised at once.
            Without it every failure is retried the same way.
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_attempts or (retry_if is not None and not retry_if(e)):
                raise

            delay_ms = initial_delay_ms * (2 ** (attempt - 1))
            logger.warning(
                "Operation failed (attempt %d/%d), retrying in %dms: %s",
                attempt,
                max_attempts,
                delay_ms,
                e,
            )
            await sleep(delay_ms / 1000.0)
            attempt += 1


def handle_service_error(
    error: Exception,
    service_name: str,
    fallback: Callable[[], T] | None = None,
) -> T:
    """Log a service failure and return the fallback's result, if any."""

    logger.error("%s service error: %s", service_name, error)
    if fallback is not None:
        return fallback()
    raise ServiceUnavailableError(
        f"{service_name} service is currently unavailable. Please try again later."
    ) from error
