"""
Core leaderboard building functionality.
"""

import asyncio
import time
from collections.abc import Iterable

from ..shared_utilities import get_logger, get_logging_manager, trace_operation
from .aggregator import aggregate
from .collector import (
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_SIZE,
    CommitCollector,
)
from .data_models import DateWindow, LeaderboardData, Repository
from .feed import CommitFeed
from .github_feed import GitHubFeed
from .label_rules import LabelRuleSet, reconcile_classifications, resolve_label_overrides
from .progress import ProgressPhase, ProgressReporter, ProgressTracker


class LeaderboardService:
    """
    Builds AI-attribution leaderboards for a set of repositories.

    Ties together commit collection, optional PR-label attribution and
    aggregation. The service holds no state between builds.
    """

    def __init__(
        self,
        feed: CommitFeed | None = None,
        token: str | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
        estimate_totals: bool = True,
    ):
        """Initialize the service.

        Args:
            feed: Commit feed, defaults to the GitHub REST feed
            token: GitHub token used when no feed is given
            concurrency: Repositories processed at once
            page_size: Items requested per page
            max_pages: Safety limit on pages per repository
            estimate_totals: Run the count-only phase before fetching
        """
        self.logger = get_logger(__name__)
        self.feed = feed if feed is not None else GitHubFeed(token=token)
        self.collector = CommitCollector(
            self.feed,
            concurrency=concurrency,
            page_size=page_size,
            max_pages=max_pages,
            estimate_totals=estimate_totals,
        )

    async def build(
        self,
        repositories: Iterable[Repository],
        window: DateWindow,
        label_rules: LabelRuleSet | None = None,
        label_scan_repos: Iterable[str] | None = None,
        progress: ProgressReporter | None = None,
    ) -> LeaderboardData:
        """
        Build the leaderboard for the given repositories and window.

        Args:
            repositories: Repositories to analyze
            window: Commit window
            label_rules: PR label rules, defaults to the built-in table
            label_scan_repos: Repository keys whose merged PRs are scanned for labels
            progress: Optional progress callback

        Returns:
            Aggregated leaderboard data

        Raises:
            CollectionError: If none of the repositories could be reached
        """
        repositories = list(repositories)
        if not repositories or window.is_empty:
            self.logger.info("Nothing to analyze", repositories=len(repositories))
            return LeaderboardData.empty()

        label_rules = LabelRuleSet() if label_rules is None else label_rules
        scan_keys = list(label_scan_repos or [])
        logging_manager = get_logging_manager()
        start_time = time.time()
        logging_manager.log_operation_start(
            "build_leaderboard",
            repositories=len(repositories),
            since=window.since,
            until=window.until,
        )

        with trace_operation(
            "build_leaderboard",
            {"repositories": len(repositories), "since": window.since, "until": window.until},
        ):
            commits = await self.collector.collect(repositories, window, progress)

            overrides = {}
            scan_repositories = [
                repository
                for repository in repositories
                if any(repository.matches(key) for key in scan_keys)
            ]
            enabled = label_rules.enabled_rules()
            if scan_repositories and enabled:
                pull_requests = await self.collector.collect_labeled_prs(
                    scan_repositories, window, enabled, progress
                )
                overrides = resolve_label_overrides(enabled, pull_requests)

            ProgressTracker(progress, total_repos=len(repositories)).start_phase(
                ProgressPhase.ANALYZING
            )
            classifications = reconcile_classifications(commits, overrides)
            data = aggregate(commits, classifications)

        logging_manager.log_operation_complete(
            "build_leaderboard",
            time.time() - start_time,
            commits=data.total_commits,
            ai_commits=data.ai_commits,
            authors=data.active_users,
            label_overrides=len(overrides),
        )
        return data

    def build_sync(
        self,
        repositories: Iterable[Repository],
        window: DateWindow,
        label_rules: LabelRuleSet | None = None,
        label_scan_repos: Iterable[str] | None = None,
        progress: ProgressReporter | None = None,
    ) -> LeaderboardData:
        """Run build() on a fresh event loop, for synchronous callers."""
        return asyncio.run(
            self.build(repositories, window, label_rules, label_scan_repos, progress)
        )
