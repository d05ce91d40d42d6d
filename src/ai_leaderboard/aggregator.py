"""
Fold classified commits into the ranked leaderboard.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from ..shared_utilities import get_logger, trace_operation
from .data_models import (
    Classification,
    Commit,
    CommitDetail,
    LeaderboardData,
    LeaderboardEntry,
    ModelBreakdown,
    ToolBreakdown,
)

logger = get_logger(__name__)


def ai_percentage(ai_commits: int, total_commits: int) -> int:
    """Share of AI commits as a whole percentage, rounding halves up."""
    if total_commits <= 0:
        return 0
    return (200 * ai_commits + total_commits) // (2 * total_commits)


@dataclass
class _AuthorTotals:
    """Running totals for one author, owned by a single aggregate() call."""

    username: str
    avatar: str = ""
    total_commits: int = 0
    ai_commits: int = 0
    commit_dates: list[datetime] = field(default_factory=list)
    details: list[CommitDetail] = field(default_factory=list)
    tools: ToolBreakdown = field(default_factory=ToolBreakdown)
    models: ModelBreakdown = field(default_factory=ModelBreakdown)

    def add_commit(self, commit: Commit) -> None:
        self.total_commits += 1
        self.commit_dates.append(commit.timestamp)
        if not self.avatar and commit.author_avatar:
            self.avatar = commit.author_avatar

    def add_ai_commit(self, commit: Commit, classification: Classification) -> None:
        self.ai_commits += 1
        self.tools = self.tools.incremented(classification.tool)
        if classification.tool.is_claude:
            self.models = self.models.incremented(classification.model)
        self.details.append(
            CommitDetail(
                sha=commit.sha,
                message=commit.subject,
                date=commit.timestamp,
                url=commit.url,
                repository=commit.repository,
                ai_tool=classification.tool,
                claude_model=classification.model,
                source=classification.source,
            )
        )

    def to_entry(self, rank: int) -> LeaderboardEntry:
        return LeaderboardEntry(
            rank=rank,
            username=self.username,
            commits=self.ai_commits,
            total_commits=self.total_commits,
            ai_percentage=ai_percentage(self.ai_commits, self.total_commits),
            avatar=self.avatar,
            commit_details=tuple(
                sorted(self.details, key=lambda d: (d.date, d.sha), reverse=True)
            ),
            all_commit_dates=tuple(sorted(self.commit_dates)),
            ai_tool_breakdown=self.tools,
            claude_model_breakdown=self.models,
        )


def _rank_key(totals: _AuthorTotals) -> tuple[int, int, str]:
    return (-totals.ai_commits, -totals.total_commits, totals.username)


def aggregate(
    commits: Iterable[Commit], classifications: Mapping[str, Classification]
) -> LeaderboardData:
    """
    Build the leaderboard from commits and their classifications.

    Every author with a login appears, including authors without AI commits.
    Commits without an author login are left out of every total. Entries are
    ranked by AI commits, then total commits, then login.

    Args:
        commits: All commits in the window
        classifications: Classification per commit SHA for AI-attributed commits

    Returns:
        LeaderboardData with per-author entries and global roll-ups
    """
    authors: dict[str, _AuthorTotals] = {}
    excluded = 0

    with trace_operation("aggregate_leaderboard"):
        for commit in commits:
            if not commit.author_login:
                excluded += 1
                continue

            totals = authors.get(commit.author_login)
            if totals is None:
                totals = authors[commit.author_login] = _AuthorTotals(commit.author_login)
            totals.add_commit(commit)

            classification = classifications.get(commit.sha)
            if classification is not None:
                totals.add_ai_commit(commit, classification)

        ranked = sorted(authors.values(), key=_rank_key)
        leaderboard = tuple(
            totals.to_entry(rank) for rank, totals in enumerate(ranked, start=1)
        )

    tool_breakdown = sum((entry.ai_tool_breakdown for entry in leaderboard), ToolBreakdown())
    model_breakdown = sum(
        (entry.claude_model_breakdown for entry in leaderboard), ModelBreakdown()
    )

    if excluded:
        logger.debug("Excluded commits without author login", commits=excluded)

    return LeaderboardData(
        total_commits=sum(entry.total_commits for entry in leaderboard),
        ai_commits=sum(entry.commits for entry in leaderboard),
        ai_tool_breakdown=tool_breakdown,
        claude_model_breakdown=model_breakdown,
        active_users=len(leaderboard),
        leaderboard=leaderboard,
        excluded_commits=excluded,
    )
