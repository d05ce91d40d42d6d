"""
Commit and labeled pull-request collection across repositories.

Repositories are processed by a small fixed pool of async workers pulling
from a shared cursor, which bounds the number of in-flight requests no matter
how many repositories are selected. Failures are recorded per unit of work
and never abort the other units.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import replace
from typing import TypeVar

from ..shared_utilities import get_logger, get_logging_manager, trace_operation
from .data_models import Commit, DateWindow, FetchResult, PullRequest, Repository
from .feed import CommitFeed, FeedError
from .label_rules import LabelRule
from .progress import ProgressPhase, ProgressReporter, ProgressTracker

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_CONCURRENCY = 3
DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 100


class CollectionError(Exception):
    """No repository could be reached at all."""

    def __init__(self, message: str, failures: list[FetchResult]):
        super().__init__(message)
        self.failures = failures


async def run_worker_pool(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int = DEFAULT_CONCURRENCY,
    key: Callable[[T], str] = str,
) -> list[FetchResult[R]]:
    """
    Run ``worker`` over ``items`` with at most ``concurrency`` in flight.

    Each pool coroutine takes the next index from a shared cursor until the
    items are exhausted. A FeedError ends only its own item.

    Returns:
        One FetchResult per item, in input order
    """
    results: list[FetchResult[R] | None] = [None] * len(items)
    cursor = 0

    async def run() -> None:
        nonlocal cursor
        while cursor < len(items):
            # No await between read and increment, so claims never overlap
            index = cursor
            cursor += 1
            item = items[index]
            try:
                value = await worker(item)
            except FeedError as e:
                results[index] = FetchResult(key(item), error=e)
            else:
                results[index] = FetchResult(key(item), value=value)

    pool_size = min(max(1, concurrency), len(items))
    await asyncio.gather(*(run() for _ in range(pool_size)))
    return results  # type: ignore[return-value]


class CommitCollector:
    """Collects commits and AI-labeled pull requests through a CommitFeed."""

    def __init__(
        self,
        feed: CommitFeed,
        concurrency: int = DEFAULT_CONCURRENCY,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
        estimate_totals: bool = True,
    ):
        """
        Initialize the collector.

        Args:
            feed: Source of commit and pull-request pages
            concurrency: Number of repositories processed at once
            page_size: Items requested per page
            max_pages: Safety limit on pages fetched per repository or search
            estimate_totals: Issue a count-only request per repository first
        """
        self.feed = feed
        self.concurrency = max(1, concurrency)
        self.page_size = max(1, page_size)
        self.max_pages = max(1, max_pages)
        self.estimate_totals = estimate_totals

    async def collect(
        self,
        repositories: Iterable[Repository],
        window: DateWindow,
        progress: ProgressReporter | None = None,
    ) -> list[Commit]:
        """
        Fetch every commit inside the window from each repository.

        Args:
            repositories: Repositories to fetch
            window: Commit authoring window
            progress: Optional progress callback

        Returns:
            Commits from all reachable repositories

        Raises:
            CollectionError: If no repository could be reached
        """
        repositories = list(repositories)
        if not repositories or window.is_empty:
            return []

        logging_manager = get_logging_manager()
        logging_manager.log_operation_start(
            "collect_commits", repositories=len(repositories), since=window.since
        )
        start_time = time.time()
        tracker = ProgressTracker(progress, total_repos=len(repositories))

        with trace_operation(
            "collect_commits",
            {"repositories": len(repositories), "since": window.since, "until": window.until},
        ):
            if self.estimate_totals:
                await self._estimate_totals(repositories, window, tracker)

            tracker.start_phase(ProgressPhase.FETCHING, len(repositories))
            results = await run_worker_pool(
                repositories,
                lambda repo: self._fetch_repository(repo, window, tracker),
                self.concurrency,
                key=lambda repo: repo.full_name,
            )

        failures = [result for result in results if not result.ok]
        for failure in failures:
            logger.warning(
                "Repository unreachable", repository=failure.key, error=str(failure.error)
            )
        if failures and len(failures) == len(results):
            error = CollectionError(
                f"Could not fetch commits from any of {len(results)} repositories",
                failures,
            )
            logging_manager.log_operation_error("collect_commits", error)
            raise error

        commits = [commit for result in results if result.ok for commit in result.value]
        logging_manager.log_operation_complete(
            "collect_commits",
            time.time() - start_time,
            commits=len(commits),
            failed_repositories=len(failures),
        )
        return commits

    async def _estimate_totals(
        self, repositories: list[Repository], window: DateWindow, tracker: ProgressTracker
    ) -> None:
        """Sum count-only estimates; failures just leave a repository out."""
        tracker.start_phase(ProgressPhase.COUNTING, len(repositories))

        async def count(repository: Repository) -> int | None:
            tracker.unit_started()
            try:
                return await self.feed.count_commits(repository, window)
            except FeedError:
                raise
            except Exception as e:
                # Estimates are advisory; the fetch phase runs regardless
                logger.debug(
                    "Commit count failed", repository=repository.full_name, error=repr(e)
                )
                return None
            finally:
                tracker.unit_finished()

        results = await run_worker_pool(
            repositories, count, self.concurrency, key=lambda repo: repo.full_name
        )
        counts = [result.value for result in results if result.ok and result.value is not None]
        for result in results:
            if not result.ok:
                logger.debug("Commit count unavailable", repository=result.key, error=str(result.error))
        tracker.set_estimate(sum(counts) if counts else None)

    async def _fetch_repository(
        self, repository: Repository, window: DateWindow, tracker: ProgressTracker
    ) -> list[Commit]:
        """
        Page through one repository's commits.

        A failure on the first page fails the repository; a later failure
        keeps the pages already fetched.
        """
        commits: list[Commit] = []
        tracker.unit_started()
        try:
            for page in range(1, self.max_pages + 1):
                try:
                    result = await self.feed.list_commits(
                        repository, window, page, self.page_size
                    )
                except FeedError as e:
                    if page == 1:
                        raise
                    logger.warning(
                        "Commit page failed, keeping earlier pages",
                        repository=repository.full_name,
                        page=page,
                        error=str(e),
                    )
                    break

                commits.extend(result.items)
                tracker.commits_added(len(result.items))
                if not result.has_more:
                    break
            else:
                logger.warning(
                    "Stopped paginating at safety limit",
                    repository=repository.full_name,
                    max_pages=self.max_pages,
                )
        finally:
            tracker.unit_finished()

        logger.debug(
            "Fetched repository commits",
            repository=repository.full_name,
            commits=len(commits),
        )
        return commits

    async def collect_labeled_prs(
        self,
        repositories: Iterable[Repository],
        window: DateWindow,
        rules: Iterable[LabelRule],
        progress: ProgressReporter | None = None,
    ) -> list[PullRequest]:
        """
        Find merged PRs carrying an enabled label and resolve their merge commits.

        One search runs per (repository, label) pair. PRs found by several
        searches are kept once with their labels merged. PRs whose merge
        commit cannot be resolved are skipped.

        Args:
            repositories: Repositories to scan for labeled PRs
            window: Merge window
            rules: Label rules; only enabled labels are searched
            progress: Optional progress callback

        Returns:
            Pull requests with a merge commit SHA
        """
        repositories = list(repositories)
        labels = [rule.label for rule in rules if rule.enabled]
        if not repositories or not labels or window.is_empty:
            return []

        pairs = [(repository, label) for repository in repositories for label in labels]
        tracker = ProgressTracker(progress, total_repos=len(pairs))
        tracker.start_phase(ProgressPhase.FETCHING_PRS)

        with trace_operation(
            "collect_labeled_prs", {"repositories": len(repositories), "labels": len(labels)}
        ):
            search_results = await run_worker_pool(
                pairs,
                lambda pair: self._search_label(pair[0], pair[1], window, tracker),
                self.concurrency,
                key=lambda pair: f"{pair[0].full_name}:{pair[1]}",
            )

            unique: dict[tuple[str, int], tuple[Repository, PullRequest]] = {}
            for result in search_results:
                if not result.ok:
                    logger.warning("Label search failed", search=result.key, error=str(result.error))
                    continue
                for repository, pr in result.value:
                    if pr.key not in unique:
                        unique[pr.key] = (repository, pr)
                        continue
                    kept_repo, kept = unique[pr.key]
                    extra = tuple(label for label in pr.labels if label not in kept.labels)
                    unique[pr.key] = (kept_repo, replace(kept, labels=kept.labels + extra))

            lookups = list(unique.values())
            merge_results = await run_worker_pool(
                lookups,
                lambda item: self._resolve_merge_commit(*item),
                self.concurrency,
                key=lambda item: f"{item[0].full_name}#{item[1].number}",
            )

        resolved: list[PullRequest] = []
        for result in merge_results:
            if not result.ok:
                logger.warning("Merge commit lookup failed", pull_request=result.key, error=str(result.error))
            elif result.value.merge_commit_sha:
                resolved.append(result.value)

        logger.info(
            "Collected labeled pull requests",
            searched=len(pairs),
            found=len(lookups),
            resolved=len(resolved),
        )
        return resolved

    async def _search_label(
        self,
        repository: Repository,
        label: str,
        window: DateWindow,
        tracker: ProgressTracker,
    ) -> list[tuple[Repository, PullRequest]]:
        """Page through one (repository, label) search."""
        found: list[tuple[Repository, PullRequest]] = []
        tracker.unit_started()
        try:
            for page in range(1, self.max_pages + 1):
                try:
                    result = await self.feed.search_merged_pull_requests(
                        repository, label, window, page, self.page_size
                    )
                except FeedError as e:
                    if page == 1:
                        raise
                    logger.warning(
                        "Label search page failed, keeping earlier pages",
                        repository=repository.full_name,
                        label=label,
                        page=page,
                        error=str(e),
                    )
                    break

                found.extend((repository, pr) for pr in result.items)
                if not result.has_more:
                    break
        finally:
            tracker.unit_finished()
        return found

    async def _resolve_merge_commit(
        self, repository: Repository, pr: PullRequest
    ) -> PullRequest:
        if pr.merge_commit_sha:
            return pr
        sha = await self.feed.get_merge_commit_sha(repository, pr.number)
        return replace(pr, merge_commit_sha=sha)
