"""
Rate Limiter module for the domain finder system.

This module provides rate limiting functionality with:
- Serial access control per provider (no parallel requests to the same API)
- Request tracking within configurable time windows
- Adaptive cooldown after 429/503 responses
- Support for per-provider and global limits
"""

import asyncio
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional

from .config import RateLimitConfig, RateLimitRule


@dataclass
class RateLimitStatus:
    """Result of a rate limit check."""

    allowed: bool
    wait_seconds: float
    reason: Optional[str] = None


class RateLimiter:
    """
    Rate limiter with serial access control per provider.

    Ensures:
    - No parallel requests to the same provider (via asyncio.Lock)
    - Request counts stay within configured limits
    - A growing cooldown after consecutive 429/503 responses
    """

    # Base multiplier for adaptive delay calculation
    ADAPTIVE_DELAY_BASE = 2.0
    # Maximum adaptive delay in seconds
    MAX_ADAPTIVE_DELAY = 120.0
    # Default delay for 429/503 when no Retry-After was given
    DEFAULT_ERROR_DELAY = 5.0

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            config: Per-provider and global limits
            sleep: Coroutine used for waiting (injectable for tests)
        """
        self._config = config or RateLimitConfig()
        self._sleep = sleep
        self._request_times: dict[str, list[float]] = defaultdict(list)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._consecutive_errors: dict[str, int] = defaultdict(int)
        self._cooldown_until: dict[str, float] = {}

    @asynccontextmanager
    async def acquire(self, provider: str) -> AsyncIterator[RateLimitStatus]:
        """
        Acquire the provider's lock and report whether a request may go out.

        Usage:
            async with rate_limiter.acquire("namecheap") as status:
                if not status.allowed:
                    await asyncio.sleep(status.wait_seconds)
                response = await make_request()
                rate_limiter.record_request("namecheap")
        """
        async with self._locks[provider]:
            wait_seconds, reason = self._calculate_wait_time(provider)
            yield RateLimitStatus(
                allowed=wait_seconds <= 0,
                wait_seconds=max(0.0, wait_seconds),
                reason=reason,
            )

    async def throttle(self, provider: str, max_wait_seconds: float = 10.0) -> RateLimitStatus:
        """
        Wait until the provider may be called and record the request.

        Waits longer than ``max_wait_seconds`` are not slept through: the
        returned status stays ``allowed=False`` and nothing is recorded, so
        the caller can give up and let the next provider answer.
        """
        async with self.acquire(provider) as status:
            if status.allowed:
                self.record_request(provider)
                return status
            if status.wait_seconds > max_wait_seconds:
                return status
            await self._sleep(status.wait_seconds)
            self.record_request(provider)
            return RateLimitStatus(allowed=True, wait_seconds=status.wait_seconds, reason=status.reason)

    def _calculate_wait_time(self, provider: str) -> tuple[float, Optional[str]]:
        """Largest wait required by cooldown, provider rule, or global rule."""
        current_time = time.monotonic()
        max_wait = 0.0
        wait_reason = None

        cooldown = self._cooldown_until.get(provider, 0.0) - current_time
        if cooldown > max_wait:
            max_wait = cooldown
            wait_reason = f"Cooldown for {provider} after throttling"

        rule = self._config.per_provider.get(provider)
        if rule:
            wait, reason = self._check_rule(f"provider:{provider}", rule, current_time)
            if wait > max_wait:
                max_wait = wait
                wait_reason = reason

        if self._config.global_limit:
            wait, reason = self._check_rule("global", self._config.global_limit, current_time)
            if wait > max_wait:
                max_wait = wait
                wait_reason = reason

        return max_wait, wait_reason

    def _check_rule(
        self, key: str, rule: RateLimitRule, current_time: float
    ) -> tuple[float, Optional[str]]:
        """Check a single sliding-window rule and calculate wait time if needed."""
        window_start = current_time - rule.window_seconds
        self._request_times[key] = [
            t for t in self._request_times[key] if t > window_start
        ]
        request_count = len(self._request_times[key])

        if request_count >= rule.max_requests:
            oldest_request = min(self._request_times[key])
            wait_seconds = max(0.0, oldest_request + rule.window_seconds - current_time)
            return wait_seconds, f"Rate limit reached for {key}: {request_count}/{rule.max_requests}"

        if rule.min_delay_seconds > 0 and self._request_times[key]:
            time_since_last = current_time - max(self._request_times[key])
            if time_since_last < rule.min_delay_seconds:
                return rule.min_delay_seconds - time_since_last, f"Minimum delay for {key}"

        return 0.0, None

    def record_request(self, provider: str) -> None:
        """Record that a request to the provider was made."""
        current_time = time.monotonic()
        if provider in self._config.per_provider:
            self._request_times[f"provider:{provider}"].append(current_time)
        if self._config.global_limit:
            self._request_times["global"].append(current_time)

    def record_success(self, provider: str) -> None:
        """Reset the consecutive error count after a good response."""
        self._consecutive_errors[provider] = 0

    def apply_adaptive_delay(
        self,
        provider: str,
        status_code: int,
        retry_after_seconds: Optional[float] = None,
    ) -> float:
        """
        Start a cooldown for the provider after a 429/503 response.

        Uses the server's Retry-After when given, otherwise exponential
        backoff on consecutive errors: base * 2 ^ (errors - 1), capped.

        Returns:
            The cooldown in seconds (0.0 for other status codes)
        """
        if status_code not in (429, 503):
            return 0.0

        self._consecutive_errors[provider] += 1
        consecutive = self._consecutive_errors[provider]

        if retry_after_seconds is not None and retry_after_seconds > 0:
            delay = retry_after_seconds
        else:
            delay = self.DEFAULT_ERROR_DELAY * (self.ADAPTIVE_DELAY_BASE ** (consecutive - 1))
        delay = min(delay, self.MAX_ADAPTIVE_DELAY)

        self._cooldown_until[provider] = time.monotonic() + delay
        return delay

    def consecutive_errors(self, provider: str) -> int:
        return self._consecutive_errors[provider]
