"""
Retry Manager for the domain finder system.

This module provides bounded retry logic with exponential backoff. It is
used for name generation, where an upstream hiccup may be worth one more
try; provider failures are never retried here, they fall through the
resolver's provider chain instead.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .config import RetryConfig
from .exceptions import GenerationError

T = TypeVar("T")


@dataclass
class RetryResult(Generic[T]):
    """Result of a retry operation."""

    success: bool
    result: Optional[T]
    attempts: int
    last_error: Optional[Exception]


def is_retryable_generation_error(error: Exception) -> bool:
    """Only generator errors flagged as transient are retried."""
    return isinstance(error, GenerationError) and error.retryable


class RetryManager:
    """
    Manages retry logic with exponential backoff.

    Total attempts are ``1 + max_retries``; there is no unbounded retry.
    """

    def __init__(
        self,
        config: RetryConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the retry manager.

        Args:
            config: Retry configuration with max_retries and delays
            sleep: Coroutine used between attempts (injectable for tests)
        """
        self._config = config
        self._sleep = sleep

    def _calculate_delay(self, attempt: int) -> float:
        """
        Calculate wait time with exponential backoff.

        delay(n) = base_delay * 2^n, capped at max_delay.
        """
        delay = self._config.base_delay_seconds * (2 ** attempt)
        return min(delay, self._config.max_delay_seconds)

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        is_retryable: Optional[Callable[[Exception], bool]] = None,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> RetryResult[T]:
        """
        Execute an operation with retry logic and exponential backoff.

        Args:
            operation: The async operation to execute
            is_retryable: Decides whether an exception is worth another try.
                         If not provided, all exceptions are retryable.
            should_continue: Checked before every retry; returning False
                            stops retrying (used for cancellation)

        Returns:
            RetryResult containing success status, result, attempts, and last error
        """
        last_error: Optional[Exception] = None
        attempts = 0
        max_attempts = self._config.max_retries + 1

        while attempts < max_attempts:
            try:
                result = await operation()
                return RetryResult(
                    success=True,
                    result=result,
                    attempts=attempts + 1,
                    last_error=None,
                )
            except Exception as e:
                last_error = e
                attempts += 1

                retry = is_retryable(e) if is_retryable else True
                if not retry or attempts >= max_attempts:
                    break

                await self._sleep(self._calculate_delay(attempts - 1))
                if should_continue is not None and not should_continue():
                    break

        return RetryResult(
            success=False,
            result=None,
            attempts=attempts,
            last_error=last_error,
        )
