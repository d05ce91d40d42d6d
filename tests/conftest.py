"""
Pytest configuration and shared fixtures.
"""

from datetime import timedelta

import pytest
from leaderboard_testdata import BASE_TIME, FakeFeed

from src.ai_leaderboard.data_models import DateWindow, Repository


@pytest.fixture
def api_repo():
    """Repository displayed as "api"."""
    return Repository(owner="acme", name="api")


@pytest.fixture
def web_repo():
    """Repository with a custom display name."""
    return Repository(owner="acme", name="web", display_name="Web App")


@pytest.fixture
def window():
    """Window covering a week around BASE_TIME."""
    return DateWindow(start=BASE_TIME - timedelta(days=3), end=BASE_TIME + timedelta(days=4))


@pytest.fixture
def fake_feed():
    """Empty in-memory feed."""
    return FakeFeed()
