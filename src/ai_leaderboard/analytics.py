"""
Time-series views over a computed leaderboard.

All series bucket commits by UTC calendar day and fill days without activity
between the first and last active day.
"""

import math
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from .data_models import LeaderboardData, LeaderboardEntry

ROLLING_WINDOW_DAYS = 7
AGENT_LOGIN_SUFFIX = "-agent[bot]"
COHORT_BANDS = ("0%", "1-25%", "26-50%", "51-75%", "76-100%")


@dataclass(frozen=True)
class DailyActivity:
    """Commit counts for one day across all authors."""

    day: date
    ai_commits: int
    total_commits: int
    agent_commits: int
    adoption_pct: float | None  # trailing-window AI share, None when idle

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "aiCommits": self.ai_commits,
            "totalCommits": self.total_commits,
            "agentCommits": self.agent_commits,
            "adoptionPct": self.adoption_pct,
        }


@dataclass(frozen=True)
class AuthorDay:
    day: date
    total_commits: int
    ai_commits: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "totalCommits": self.total_commits,
            "aiCommits": self.ai_commits,
        }


@dataclass(frozen=True)
class CohortDay:
    """Number of active authors per AI-share band on one day."""

    day: date
    bands: dict[str, int] = field(default_factory=dict)

    @property
    def active_authors(self) -> int:
        return sum(self.bands.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "activeAuthors": self.active_authors,
            "bands": {band: self.bands.get(band, 0) for band in COHORT_BANDS},
        }


def is_agent(username: str) -> bool:
    return username.endswith(AGENT_LOGIN_SUFFIX)


def _day(value: datetime) -> date:
    return value.astimezone(timezone.utc).date()


def _day_range(days: Iterable[date]) -> list[date]:
    days = sorted(set(days))
    if not days:
        return []
    span = (days[-1] - days[0]).days
    return [days[0] + timedelta(days=offset) for offset in range(span + 1)]


def _round_half_up(value: float, digits: int = 1) -> float:
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def cohort_band(percentage: float) -> str:
    """Band label for an author's AI share within a window."""
    if percentage <= 0:
        return "0%"
    if percentage <= 25:
        return "1-25%"
    if percentage <= 50:
        return "26-50%"
    if percentage <= 75:
        return "51-75%"
    return "76-100%"


def daily_activity(
    data: LeaderboardData, window_days: int = ROLLING_WINDOW_DAYS
) -> list[DailyActivity]:
    """
    Per-day AI, total and agent commit counts with a trailing adoption rate.

    Args:
        data: Computed leaderboard
        window_days: Length of the trailing window for adoption_pct

    Returns:
        One DailyActivity per day, oldest first
    """
    ai_by_day: Counter[date] = Counter()
    total_by_day: Counter[date] = Counter()
    agent_by_day: Counter[date] = Counter()

    for entry in data.leaderboard:
        agent = is_agent(entry.username)
        for detail in entry.commit_details:
            ai_by_day[_day(detail.date)] += 1
        for committed_at in entry.all_commit_dates:
            day = _day(committed_at)
            total_by_day[day] += 1
            if agent:
                agent_by_day[day] += 1

    days = _day_range(total_by_day.keys() | ai_by_day.keys())
    series: list[DailyActivity] = []
    for index, day in enumerate(days):
        trailing = days[max(0, index - window_days + 1) : index + 1]
        window_ai = sum(ai_by_day[d] for d in trailing)
        window_total = sum(total_by_day[d] for d in trailing)
        series.append(
            DailyActivity(
                day=day,
                ai_commits=ai_by_day[day],
                total_commits=total_by_day[day],
                agent_commits=agent_by_day[day],
                adoption_pct=(
                    _round_half_up(100 * window_ai / window_total) if window_total else None
                ),
            )
        )
    return series


def author_activity(entry: LeaderboardEntry) -> list[AuthorDay]:
    """Per-day total and AI commit counts for one author."""
    totals = Counter(_day(committed_at) for committed_at in entry.all_commit_dates)
    ai = Counter(_day(detail.date) for detail in entry.commit_details)
    return [
        AuthorDay(day=day, total_commits=totals[day], ai_commits=ai[day])
        for day in _day_range(totals.keys() | ai.keys())
    ]


def adoption_cohorts(
    leaderboard: Sequence[LeaderboardEntry], window_days: int = ROLLING_WINDOW_DAYS
) -> list[CohortDay]:
    """
    Distribution of active authors across AI-share bands, day by day.

    An author counts on a day when they committed within the trailing window;
    their band is the AI share of those commits.
    """
    per_author = [
        (
            Counter(_day(committed_at) for committed_at in entry.all_commit_dates),
            Counter(_day(detail.date) for detail in entry.commit_details),
        )
        for entry in leaderboard
    ]
    all_days = _day_range(day for totals, _ in per_author for day in totals)

    cohorts: list[CohortDay] = []
    for index, day in enumerate(all_days):
        trailing = all_days[max(0, index - window_days + 1) : index + 1]
        bands = dict.fromkeys(COHORT_BANDS, 0)
        for totals, ai in per_author:
            window_total = sum(totals[d] for d in trailing)
            if window_total == 0:
                continue
            window_ai = sum(ai[d] for d in trailing)
            bands[cohort_band(100 * window_ai / window_total)] += 1
        cohorts.append(CohortDay(day=day, bands=bands))
    return cohorts
