"""Tests for the shared rate limit manager."""

import time
from unittest.mock import Mock, patch

import pytest

from src.shared_utilities.rate_limit_manager import (
    RateLimitExhaustedError,
    RateLimitManager,
    RateLimitStatus,
)


def response_with_headers(remaining, limit=5000, reset_in=3600):
    response = Mock()
    response.headers = {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(int(time.time() + reset_in)),
    }
    return response


class TestRateLimitStatus:
    """Test status helpers."""

    def test_usage_percentage(self):
        status = RateLimitStatus(limit=5000, remaining=1000, reset_time=0, used=4000)

        assert status.usage_percentage == pytest.approx(0.8)

    def test_zero_limit(self):
        assert RateLimitStatus(0, 0, 0, 0).usage_percentage == 0.0


class TestRateLimitManager:
    """Test throttling decisions."""

    def test_extract_status(self):
        """Headers are parsed into a status and remembered."""
        manager = RateLimitManager()

        status = manager.extract_rate_limit_status(response_with_headers(4999))

        assert status.remaining == 4999
        assert status.used == 1
        assert manager.last_status == status

    def test_missing_headers(self):
        """Responses without rate limit headers are ignored."""
        response = Mock()
        response.headers = {}

        assert RateLimitManager().extract_rate_limit_status(response) is None

    def test_pygithub_raw_headers(self):
        """PyGithub objects report their quota through lowercase raw_headers."""
        pull = Mock(spec=["raw_headers"])
        pull.raw_headers = {
            "x-ratelimit-limit": "5000",
            "x-ratelimit-remaining": "4000",
            "x-ratelimit-reset": "1700000000",
        }

        status = RateLimitManager().extract_rate_limit_status(pull)

        assert status.remaining == 4000
        assert status.used == 1000

    def test_no_delay_at_low_usage(self):
        """Plenty of quota means no delay."""
        manager = RateLimitManager()
        manager.extract_rate_limit_status(response_with_headers(4000))

        assert manager.calculate_delay() == 0.0

    def test_delay_grows_with_usage(self):
        """Heavier usage yields longer delays."""
        manager = RateLimitManager()
        medium = manager.calculate_delay(RateLimitStatus(5000, 1500, int(time.time()) + 3600, 3500))
        high = manager.calculate_delay(RateLimitStatus(5000, 500, int(time.time()) + 3600, 4500))

        assert 0 < medium < high

    def test_pause_when_exhausted(self):
        """No quota left means requests are refused until reset."""
        manager = RateLimitManager()
        manager.extract_rate_limit_status(response_with_headers(0, reset_in=600))
        request = Mock()

        with pytest.raises(RateLimitExhaustedError):
            manager.make_rate_limited_request(request, "test", "https://api.github.com")

        request.assert_not_called()

    def test_no_pause_after_reset(self):
        """A spent quota whose window has passed does not pause."""
        manager = RateLimitManager()
        manager.extract_rate_limit_status(response_with_headers(0, reset_in=-10))

        assert manager.should_pause_operations() == (False, 0)

    def test_request_passthrough(self):
        """Arguments reach the request function and its status is recorded."""
        manager = RateLimitManager()
        request = Mock(return_value=response_with_headers(4500))

        response = manager.make_rate_limited_request(
            request, "test", "https://api.github.com/x", params={"a": 1}
        )

        request.assert_called_once_with("https://api.github.com/x", params={"a": 1})
        assert response is request.return_value
        assert manager.last_status.remaining == 4500

    def test_wait_reserves_slots(self):
        """Consecutive callers are spaced by the computed delay."""
        manager = RateLimitManager(base_delay=1.0)

        with patch("src.shared_utilities.rate_limit_manager.time.sleep") as sleep:
            manager.wait_if_needed("a")
            manager.wait_if_needed("b")

        assert sleep.call_count == 1
        assert sleep.call_args.args[0] == pytest.approx(1.0, abs=0.1)

    def test_status_summary(self):
        """The summary reports remaining quota."""
        manager = RateLimitManager()
        assert manager.format_status_summary() == "Rate limit status: Unknown"

        manager.extract_rate_limit_status(response_with_headers(100))
        assert "100/5000 remaining" in manager.format_status_summary()
