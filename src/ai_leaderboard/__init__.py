"""
AI commit leaderboard.

Attributes commits to AI tools from commit messages and pull-request labels,
and ranks contributors by AI-assisted work.
"""

from .aggregator import aggregate
from .analytics import adoption_cohorts, author_activity, daily_activity
from .config import LeaderboardConfig, LeaderboardConfigManager
from .core import LeaderboardService
from .data_models import (
    AITool,
    Classification,
    ClaudeModel,
    Commit,
    DateWindow,
    LeaderboardData,
    LeaderboardEntry,
    PullRequest,
    Repository,
)
from .detector import classify

__all__ = [
    "LeaderboardService",
    "LeaderboardConfig",
    "LeaderboardConfigManager",
    "AITool",
    "ClaudeModel",
    "Classification",
    "Commit",
    "DateWindow",
    "LeaderboardData",
    "LeaderboardEntry",
    "PullRequest",
    "Repository",
    "aggregate",
    "adoption_cohorts",
    "author_activity",
    "daily_activity",
    "classify",
]
