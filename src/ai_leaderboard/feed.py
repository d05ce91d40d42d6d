"""
Input feed contract for commit and pull-request data.
"""

from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

from .data_models import Commit, DateWindow, PullRequest, Repository

T = TypeVar("T")


class FeedError(Exception):
    """A single feed request failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class FeedPage(Generic[T]):
    """One page of feed results."""

    items: list[T] = field(default_factory=list)
    has_more: bool = False


class CommitFeed(Protocol):
    """
    Paged access to commits and labeled pull requests.

    Every method raises FeedError when the request fails.
    """

    async def list_commits(
        self, repository: Repository, window: DateWindow, page: int, per_page: int
    ) -> FeedPage[Commit]:
        """Fetch one page of commits authored inside the window."""
        ...

    async def count_commits(
        self, repository: Repository, window: DateWindow
    ) -> int | None:
        """Cheaply estimate the number of commits inside the window."""
        ...

    async def search_merged_pull_requests(
        self,
        repository: Repository,
        label: str,
        window: DateWindow,
        page: int,
        per_page: int,
    ) -> FeedPage[PullRequest]:
        """Fetch one page of PRs carrying ``label`` merged inside the window."""
        ...

    async def get_merge_commit_sha(
        self, repository: Repository, number: int
    ) -> str | None:
        """Look up the merge commit SHA of a pull request."""
        ...
