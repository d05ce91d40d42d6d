"""
Data models for AI attribution and leaderboard aggregation.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class AITool(Enum):
    """AI assistance channel a commit is attributed to."""

    CLAUDE_COAUTHOR = "claude-coauthor"
    CLAUDE_GENERATED = "claude-generated"
    COPILOT = "copilot"
    CURSOR = "cursor"
    CODEX = "codex"
    GEMINI = "gemini"
    AGENT = "agent"

    @property
    def is_claude(self) -> bool:
        return self in (AITool.CLAUDE_COAUTHOR, AITool.CLAUDE_GENERATED)

    @property
    def field_name(self) -> str:
        return self.value.replace("-", "_")


class ClaudeModel(Enum):
    """Claude model variant named in a co-author trailer."""

    OPUS = "opus"
    SONNET = "sonnet"
    HAIKU = "haiku"
    UNKNOWN = "unknown"

    @property
    def field_name(self) -> str:
        return self.value


class ClassificationSource(Enum):
    """Signal a classification was derived from."""

    MESSAGE = "message"
    PR_LABEL = "pr-label"


def isoformat(value: datetime) -> str:
    """Render an instant as a UTC ISO-8601 string with a Z suffix."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: str) -> datetime:
    """Parse a GitHub ISO-8601 timestamp into an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Repository:
    """Reference to a repository selected for analysis."""

    owner: str
    name: str
    display_name: str = ""

    def __post_init__(self):
        if not self.display_name:
            object.__setattr__(self, "display_name", self.name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str) -> "Repository":
        """Parse ``owner/name`` or ``owner/name=Display Name``."""
        display_name = ""
        if "=" in value:
            value, display_name = value.split("=", 1)
        owner, sep, name = value.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Repository must be in owner/name format: {value!r}")
        return cls(owner=owner, name=name, display_name=display_name.strip())

    def matches(self, key: str) -> bool:
        """Check whether a user-supplied key refers to this repository."""
        return key in (self.display_name, self.full_name, self.name)


@dataclass(frozen=True)
class DateWindow:
    """Half-open collection window ``[start, end)``."""

    start: datetime
    end: datetime

    def __post_init__(self):
        # Naive datetimes are taken as UTC
        for name in ("start", "end"):
            value = getattr(self, name)
            if value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=timezone.utc))

    @classmethod
    def last_days(cls, days: int = 7, now: datetime | None = None) -> "DateWindow":
        """Window covering the last ``days`` days up to ``now``."""
        end = now or datetime.now(timezone.utc)
        return cls(start=end - timedelta(days=days), end=end)

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    @property
    def since(self) -> str:
        return isoformat(self.start)

    @property
    def until(self) -> str:
        return isoformat(self.end)


@dataclass(frozen=True)
class Commit:
    """A single commit from the commit feed."""

    sha: str
    author_login: str | None
    author_avatar: str
    message: str
    timestamp: datetime
    repository: str  # display name of the owning repository
    url: str = ""

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]


@dataclass(frozen=True)
class PullRequest:
    """A merged pull request returned by a label search."""

    number: int
    repository: str
    labels: tuple[str, ...] = ()
    merge_commit_sha: str | None = None
    author_login: str | None = None
    merged_at: datetime | None = None

    @property
    def key(self) -> tuple[str, int]:
        """Identity of the pull request across searches."""
        return (self.repository, self.number)


@dataclass(frozen=True)
class Classification:
    """AI attribution of one commit."""

    tool: AITool
    model: ClaudeModel | None = None
    source: ClassificationSource = ClassificationSource.MESSAGE

    def __post_init__(self):
        if self.tool.is_claude and self.model is None:
            object.__setattr__(self, "model", ClaudeModel.UNKNOWN)
        elif not self.tool.is_claude and self.model is not None:
            raise ValueError(f"Model variants only apply to Claude tools, not {self.tool.value}")


@dataclass(frozen=True)
class ToolBreakdown:
    """Commit counts per AI tool."""

    claude_coauthor: int = 0
    claude_generated: int = 0
    copilot: int = 0
    cursor: int = 0
    codex: int = 0
    gemini: int = 0
    agent: int = 0

    def count(self, tool: AITool) -> int:
        return getattr(self, tool.field_name)

    def incremented(self, tool: AITool) -> "ToolBreakdown":
        return replace(self, **{tool.field_name: self.count(tool) + 1})

    @property
    def total(self) -> int:
        return sum(self.count(tool) for tool in AITool)

    @property
    def claude_total(self) -> int:
        return self.claude_coauthor + self.claude_generated

    def __add__(self, other: "ToolBreakdown") -> "ToolBreakdown":
        return ToolBreakdown(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    def to_dict(self) -> dict[str, int]:
        return {tool.value: self.count(tool) for tool in AITool}


@dataclass(frozen=True)
class ModelBreakdown:
    """Claude-attributed commit counts per model variant."""

    opus: int = 0
    sonnet: int = 0
    haiku: int = 0
    unknown: int = 0

    def count(self, model: ClaudeModel) -> int:
        return getattr(self, model.field_name)

    def incremented(self, model: ClaudeModel) -> "ModelBreakdown":
        return replace(self, **{model.field_name: self.count(model) + 1})

    @property
    def total(self) -> int:
        return sum(self.count(model) for model in ClaudeModel)

    def __add__(self, other: "ModelBreakdown") -> "ModelBreakdown":
        return ModelBreakdown(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    def to_dict(self) -> dict[str, int]:
        return {model.value: self.count(model) for model in ClaudeModel}


def _check_breakdown_shape(cls: type, members: type[Enum]) -> None:
    """Fail at import time when a breakdown no longer mirrors its enum."""
    declared = {f.name for f in fields(cls)}
    expected = {member.field_name for member in members}
    if declared != expected:
        raise TypeError(
            f"{cls.__name__} fields {sorted(declared)} do not match "
            f"{members.__name__} members {sorted(expected)}"
        )


_check_breakdown_shape(ToolBreakdown, AITool)
_check_breakdown_shape(ModelBreakdown, ClaudeModel)


@dataclass(frozen=True)
class CommitDetail:
    """AI-attributed commit as shown in an author's detail list."""

    sha: str
    message: str  # subject line
    date: datetime
    url: str
    repository: str
    ai_tool: AITool
    claude_model: ClaudeModel | None = None
    source: ClassificationSource = ClassificationSource.MESSAGE

    def to_dict(self) -> dict[str, Any]:
        return {
            "sha": self.sha,
            "message": self.message,
            "date": isoformat(self.date),
            "url": self.url,
            "repository": self.repository,
            "aiTool": self.ai_tool.value,
            "claudeModel": self.claude_model.value if self.claude_model else None,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class LeaderboardEntry:
    """Per-author aggregate with its rank and AI share."""

    rank: int
    username: str
    commits: int  # AI-attributed commits
    total_commits: int
    ai_percentage: int
    avatar: str
    commit_details: tuple[CommitDetail, ...] = ()
    all_commit_dates: tuple[datetime, ...] = ()
    ai_tool_breakdown: ToolBreakdown = field(default_factory=ToolBreakdown)
    claude_model_breakdown: ModelBreakdown = field(default_factory=ModelBreakdown)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "username": self.username,
            "commits": self.commits,
            "totalCommits": self.total_commits,
            "aiPercentage": self.ai_percentage,
            "avatar": self.avatar,
            "commitDetails": [detail.to_dict() for detail in self.commit_details],
            "allCommitDates": [isoformat(date) for date in self.all_commit_dates],
            "aiToolBreakdown": self.ai_tool_breakdown.to_dict(),
            "claudeModelBreakdown": self.claude_model_breakdown.to_dict(),
        }


@dataclass(frozen=True)
class LeaderboardData:
    """Aggregated leaderboard handed to the presentation layer."""

    total_commits: int
    ai_commits: int
    ai_tool_breakdown: ToolBreakdown
    claude_model_breakdown: ModelBreakdown
    active_users: int
    leaderboard: tuple[LeaderboardEntry, ...]
    excluded_commits: int = 0  # commits without a resolvable author login

    @classmethod
    def empty(cls) -> "LeaderboardData":
        return cls(
            total_commits=0,
            ai_commits=0,
            ai_tool_breakdown=ToolBreakdown(),
            claude_model_breakdown=ModelBreakdown(),
            active_users=0,
            leaderboard=(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalCommits": self.total_commits,
            "aiCommits": self.ai_commits,
            "aiToolBreakdown": self.ai_tool_breakdown.to_dict(),
            "claudeModelBreakdown": self.claude_model_breakdown.to_dict(),
            "activeUsers": self.active_users,
            "excludedCommits": self.excluded_commits,
            "leaderboard": [entry.to_dict() for entry in self.leaderboard],
        }


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of one unit of fetch work: a value or the error that ended it."""

    key: str
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
