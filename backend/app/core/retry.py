"""
Bounded exponential-backoff retry for remote store calls.

Attempt n (1-indexed) that fails with a retryable error waits
base_delay_ms * 2 ** (n - 1) before attempt n + 1. Non-retryable errors
and the final attempt's error are raised immediately, already classified.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from app.core.errors import ErrorSource, classify_error
from app.core.logging import get_logger
from app.core.metrics import record_retry

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MS = 1000


def backoff_delay_ms(attempt: int, base_delay_ms: int) -> int:
    return base_delay_ms * 2 ** (attempt - 1)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    *,
    operation_name: str = "remote_call",
    source: ErrorSource = ErrorSource.STORE,
    logger: Optional[structlog.stdlib.BoundLogger] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    log = logger or get_logger(__name__)

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            error = classify_error(e, source=source)

            if not error.retryable or attempt == max_attempts:
                log.error(
                    "remote_call_failed",
                    operation=operation_name,
                    attempts=attempt,
                    kind=error.kind.value,
                    error=error.message,
                )
                if error is e:
                    raise
                raise error from e

            delay_ms = backoff_delay_ms(attempt, base_delay_ms)
            log.warning(
                "remote_call_retry",
                operation=operation_name,
                attempt=attempt,
                max_attempts=max_attempts,
                delay_ms=delay_ms,
                kind=error.kind.value,
                error=error.message,
            )
            record_retry(operation_name)
            await sleep(delay_ms / 1000)

    # Unreachable: the loop either returns or raises on the last attempt
    raise RuntimeError("with_retry exhausted without result")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        operation_name: str,
        source: ErrorSource = ErrorSource.STORE,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        return await with_retry(
            operation,
            self.max_attempts,
            self.base_delay_ms,
            operation_name=operation_name,
            source=source,
            logger=logger,
            sleep=sleep,
        )
