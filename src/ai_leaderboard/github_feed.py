"""
GitHub REST implementation of the commit feed.

Blocking HTTP calls run in worker threads so the collector's event loop is
never blocked; every request goes through the shared rate limit manager.
"""

import asyncio
import os
import time
from typing import Any
from urllib.parse import parse_qs, urlparse

import requests
from github import Auth, Github, GithubException

from ..shared_utilities import get_logging_manager, global_rate_limit_manager
from ..shared_utilities.rate_limit_manager import RateLimitManager
from .data_models import Commit, DateWindow, PullRequest, Repository, parse_timestamp
from .feed import FeedError, FeedPage

API_BASE = "https://api.github.com"
USER_AGENT = "ai-leaderboard"
TOOL_NAME = "ai-leaderboard"


class GitHubFeed:
    """Fetches commits and labeled pull requests from the GitHub API."""

    def __init__(
        self,
        token: str | None = None,
        session: requests.Session | None = None,
        github: Github | None = None,
        rate_limit_manager: RateLimitManager | None = None,
        api_base: str = API_BASE,
        timeout: float = 30.0,
    ):
        """
        Initialize the feed.

        Args:
            token: GitHub token, defaults to GITHUB_TOKEN
            session: requests session for paged REST calls
            github: PyGithub client for single-object lookups
            rate_limit_manager: Throttling shared with other feeds
            api_base: REST API root
            timeout: Per-request timeout in seconds
        """
        self.token = token or os.environ.get("GITHUB_TOKEN")
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.rate_limit_manager = rate_limit_manager or global_rate_limit_manager

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": USER_AGENT,
            }
        )
        if self.token:
            self.session.headers["Authorization"] = f"Bearer {self.token}"

        if github is None:
            github = Github(auth=Auth.Token(self.token)) if self.token else Github()
        self.github = github

    def _get(self, path: str, params: dict[str, Any]) -> requests.Response:
        url = f"{self.api_base}{path}"
        start_time = time.time()
        try:
            response = self.rate_limit_manager.make_rate_limited_request(
                self.session.get, TOOL_NAME, url, params=params, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise FeedError(f"Request to {path} failed: {e}") from e

        get_logging_manager().log_api_request(
            "GET", url, response.status_code, time.time() - start_time
        )
        if not response.ok:
            raise FeedError(
                f"GitHub API error {response.status_code} for {path}: "
                f"{self._error_message(response)}",
                status=response.status_code,
            )
        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return response.json().get("message", response.reason)
        except (ValueError, AttributeError):
            return response.reason or "unknown error"

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise FeedError(f"Invalid JSON from {response.url}: {e}") from e

    @staticmethod
    def _parse_commit(item: dict[str, Any], repository: Repository) -> Commit:
        author = item.get("author") or {}
        git_commit = item["commit"]
        git_author = git_commit.get("author") or {}
        committed_at = git_author.get("date") or (git_commit.get("committer") or {})["date"]
        return Commit(
            sha=item["sha"],
            author_login=author.get("login"),
            author_avatar=author.get("avatar_url") or "",
            message=git_commit.get("message") or "",
            timestamp=parse_timestamp(committed_at),
            repository=repository.display_name,
            url=item.get("html_url")
            or f"https://github.com/{repository.full_name}/commit/{item['sha']}",
        )

    @staticmethod
    def _parse_pull_request(item: dict[str, Any], repository: Repository) -> PullRequest:
        merged_at = (item.get("pull_request") or {}).get("merged_at")
        return PullRequest(
            number=int(item["number"]),
            repository=repository.display_name,
            labels=tuple(label["name"] for label in item.get("labels") or []),
            author_login=(item.get("user") or {}).get("login"),
            merged_at=parse_timestamp(merged_at) if merged_at else None,
        )

    async def list_commits(
        self, repository: Repository, window: DateWindow, page: int, per_page: int
    ) -> FeedPage[Commit]:
        params = {
            "since": window.since,
            "until": window.until,
            "per_page": per_page,
            "page": page,
        }
        response = await asyncio.to_thread(
            self._get, f"/repos/{repository.full_name}/commits", params
        )
        payload = self._json(response)
        try:
            commits = [self._parse_commit(item, repository) for item in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise FeedError(f"Malformed commit payload for {repository.full_name}: {e}") from e
        return FeedPage(items=commits, has_more="next" in response.links)

    async def count_commits(
        self, repository: Repository, window: DateWindow
    ) -> int | None:
        """Count commits with a one-item page: the last-page number is the total."""
        params = {"since": window.since, "until": window.until, "per_page": 1, "page": 1}
        response = await asyncio.to_thread(
            self._get, f"/repos/{repository.full_name}/commits", params
        )
        last = response.links.get("last", {}).get("url")
        if last:
            pages = parse_qs(urlparse(last).query).get("page")
            try:
                return int(pages[0]) if pages else None
            except ValueError as e:
                raise FeedError(f"Unreadable last page link {last}: {e}") from e
        payload = self._json(response)
        if not isinstance(payload, list):
            raise FeedError(f"Unexpected commit count payload for {repository.full_name}")
        return len(payload)

    async def search_merged_pull_requests(
        self,
        repository: Repository,
        label: str,
        window: DateWindow,
        page: int,
        per_page: int,
    ) -> FeedPage[PullRequest]:
        query = (
            f'repo:{repository.full_name} is:pr is:merged label:"{label}" '
            f"merged:{window.since}..{window.until}"
        )
        response = await asyncio.to_thread(
            self._get, "/search/issues", {"q": query, "per_page": per_page, "page": page}
        )
        payload = self._json(response)
        try:
            pull_requests = [
                self._parse_pull_request(item, repository)
                for item in payload.get("items", [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise FeedError(f"Malformed search payload for {repository.full_name}: {e}") from e
        return FeedPage(items=pull_requests, has_more="next" in response.links)

    def _get_pull(self, full_name: str, number: int):
        return self.github.get_repo(full_name, lazy=True).get_pull(number)

    def _fetch_merge_commit_sha(self, repository: Repository, number: int) -> str | None:
        url = f"{self.api_base}/repos/{repository.full_name}/pulls/{number}"
        logging_manager = get_logging_manager()
        start_time = time.time()
        try:
            pull = self.rate_limit_manager.make_rate_limited_request(
                self._get_pull, TOOL_NAME, repository.full_name, number
            )
        except GithubException as e:
            logging_manager.log_api_request("GET", url, e.status, time.time() - start_time)
            message = e.data.get("message", str(e)) if isinstance(e.data, dict) else str(e)
            raise FeedError(f"GitHub API error: {message}", status=e.status) from e
        except requests.RequestException as e:
            raise FeedError(f"Pull request lookup failed: {e}") from e

        logging_manager.log_api_request("GET", url, 200, time.time() - start_time)
        return pull.merge_commit_sha if pull.merged else None

    async def get_merge_commit_sha(
        self, repository: Repository, number: int
    ) -> str | None:
        return await asyncio.to_thread(self._fetch_merge_commit_sha, repository, number)
