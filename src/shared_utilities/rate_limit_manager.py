"""
Centralized rate limit management for GitHub API requests.

Throttles requests based on GitHub's X-RateLimit headers. A single manager is
shared by every worker thread issuing requests, so pacing decisions take a
lock and reserve a request slot before sleeping.
"""

import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import requests
from loguru import logger


@dataclass
class RateLimitStatus:
    """Current rate limit status from GitHub API."""

    limit: int  # Total requests allowed per window
    remaining: int  # Requests remaining in current window
    reset_time: int  # Unix timestamp when limit resets
    used: int  # Requests used in current window

    @property
    def usage_percentage(self) -> float:
        """Percentage of rate limit used (0.0 to 1.0)."""
        if self.limit == 0:
            return 0.0
        return (self.limit - self.remaining) / self.limit

    @property
    def minutes_until_reset(self) -> float:
        """Minutes until rate limit resets."""
        return max(0, (self.reset_time - time.time()) / 60)


class RateLimitExhaustedError(requests.exceptions.HTTPError):
    """Raised instead of sending a request once the quota is spent."""


class RateLimitManager:
    """
    Manages GitHub API rate limiting with usage-based throttling.

    Shared across the process so concurrent repository workers see the same
    quota.
    """

    def __init__(
        self,
        safety_buffer: int = 10,
        min_requests_threshold: int = 50,
        base_delay: float = 0.0,
    ):
        """
        Initialize rate limit manager.

        Args:
            safety_buffer: Number of requests to keep in reserve
            min_requests_threshold: Remaining quota below which throttling starts
            base_delay: Delay used while no rate limit headers have been seen
        """
        self.safety_buffer = safety_buffer
        self.min_requests_threshold = min_requests_threshold
        self.base_delay = base_delay
        self.last_status: RateLimitStatus | None = None
        self.next_request_time = 0.0
        self._lock = threading.Lock()

    def extract_rate_limit_status(self, response: Any) -> RateLimitStatus | None:
        """
        Extract rate limit information from GitHub API response headers.

        Args:
            response: requests.Response, or a PyGithub object carrying raw_headers

        Returns:
            RateLimitStatus object or None if headers not present
        """
        raw = getattr(response, "headers", None)
        if raw is None:
            raw = getattr(response, "raw_headers", None)
        if not isinstance(raw, Mapping):
            return None
        headers = {str(key).lower(): value for key, value in raw.items()}
        if "x-ratelimit-limit" not in headers:
            return None

        try:
            limit = int(headers.get("x-ratelimit-limit", 0))
            remaining = int(headers.get("x-ratelimit-remaining", 0))
            reset_time = int(headers.get("x-ratelimit-reset", 0))
            used = int(headers.get("x-ratelimit-used", limit - remaining))
        except (ValueError, TypeError) as e:
            logger.warning(f"Failed to parse rate limit headers: {e}")
            return None

        status = RateLimitStatus(
            limit=limit, remaining=remaining, reset_time=reset_time, used=used
        )
        with self._lock:
            self.last_status = status
        return status

    def calculate_delay(self, status: RateLimitStatus | None = None) -> float:
        """
        Calculate appropriate delay before next request.

        Args:
            status: Current rate limit status, uses last known if None

        Returns:
            Delay in seconds before next request
        """
        if status is None:
            status = self.last_status

        if status is None:
            return self.base_delay

        if status.remaining <= self.safety_buffer:
            # Spread the last requests over the time left in the window
            if status.minutes_until_reset > 0:
                delay = (status.minutes_until_reset * 60) / max(1, status.remaining)
                return min(delay, 300)
            return 5.0

        if status.remaining < self.min_requests_threshold:
            per_minute = status.remaining / max(status.minutes_until_reset, 1 / 60)
            return min(60 / (per_minute * 0.8), 60)

        usage_pct = status.usage_percentage
        if usage_pct < 0.5:
            return 0.0
        if usage_pct < 0.8:
            return (usage_pct - 0.5) * 2  # 0-0.6 seconds
        return 0.6 + (usage_pct - 0.8) * 10  # 0.6-2.6 seconds

    def should_pause_operations(self) -> tuple[bool, float]:
        """
        Check if operations should be paused due to rate limit exhaustion.

        Returns:
            Tuple of (should_pause, recommended_wait_time_seconds)
        """
        status = self.last_status
        if status is None or status.remaining > 0 or status.minutes_until_reset <= 0:
            return False, 0

        return True, min(status.minutes_until_reset * 60, 3600)

    def wait_if_needed(self, tool_name: str = "unknown") -> None:
        """
        Reserve the next request slot and sleep until it arrives.

        Args:
            tool_name: Name of the caller for logging
        """
        with self._lock:
            now = time.time()
            start_at = max(now, self.next_request_time)
            self.next_request_time = start_at + self.calculate_delay()
        wait = start_at - now
        if wait > 0:
            logger.debug(f"[{tool_name}] Rate limiting: waiting {wait:.1f}s")
            time.sleep(wait)

    def format_status_summary(self) -> str:
        """Get a formatted summary of current rate limit status."""
        if self.last_status is None:
            return "Rate limit status: Unknown"

        status = self.last_status
        return (
            f"Rate limit: {status.remaining}/{status.limit} remaining "
            f"({status.usage_percentage:.1%} used), "
            f"resets in {status.minutes_until_reset:.1f} minutes"
        )

    def make_rate_limited_request(
        self, request_func: Callable, tool_name: str = "unknown", *args, **kwargs
    ) -> Any:
        """
        Make a rate-limited GitHub API request.

        Args:
            request_func: Function that makes the API call (e.g., session.get)
            tool_name: Name of tool making the request for logging
            *args, **kwargs: Arguments passed to request_func

        Returns:
            Whatever request_func returns

        Raises:
            RateLimitExhaustedError: If the quota is spent until the next reset
        """
        should_pause, wait_time = self.should_pause_operations()
        if should_pause:
            raise RateLimitExhaustedError(
                f"403 Client Error: rate limit exceeded - wait {wait_time / 60:.1f} "
                f"minutes. {self.format_status_summary()}"
            )

        self.wait_if_needed(tool_name=tool_name)
        response = request_func(*args, **kwargs)

        status = self.extract_rate_limit_status(response)
        if status:
            logger.debug(
                f"[{tool_name}] Rate limit: {status.remaining}/{status.limit} remaining "
                f"({status.usage_percentage:.1%} used)"
            )

        return response


# Process-wide manager shared by every feed instance
global_rate_limit_manager = RateLimitManager()
