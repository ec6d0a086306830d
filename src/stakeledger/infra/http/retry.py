"""Shared retry-with-exponential-backoff for every RPC call site."""

import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from stakeledger.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 5,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
) -> T:
    """Await operation() until it succeeds or max_retries attempts have failed.

    Waits base_delay * 2^n between attempts (capped at max_delay). Only
    ExternalServiceError is retried; the last one is re-raised when
    attempts run out.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type(ExternalServiceError),
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=base_delay, max=max_delay),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            return await operation()
    raise AssertionError("unreachable")  # pragma: no cover
