"""Tests for the GitHub REST commit feed."""

import asyncio
from unittest.mock import Mock

import pytest
import requests
from github import GithubException
from leaderboard_testdata import BASE_TIME

from src.ai_leaderboard.data_models import DateWindow, Repository
from src.ai_leaderboard.feed import FeedError
from src.ai_leaderboard.github_feed import GitHubFeed
from src.shared_utilities.rate_limit_manager import RateLimitExhaustedError


def make_response(payload, status_code=200, links=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    response.links = links or {}
    response.url = "https://api.github.com/test"
    response.json.return_value = payload
    return response


def commit_payload(sha, login="alice", message="Fix bug"):
    return {
        "sha": sha,
        "html_url": f"https://github.com/acme/api/commit/{sha}",
        "author": {"login": login, "avatar_url": f"https://avatars/{login}"} if login else None,
        "commit": {
            "message": message,
            "author": {"name": "Alice", "date": "2025-03-10T12:00:00Z"},
            "committer": {"date": "2025-03-10T12:05:00Z"},
        },
    }


@pytest.fixture
def session():
    """Mock requests session."""
    mock_session = Mock()
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def rate_limiter():
    """Rate limit manager that calls straight through."""
    manager = Mock()
    manager.make_rate_limited_request.side_effect = (
        lambda func, tool_name, *args, **kwargs: func(*args, **kwargs)
    )
    return manager


@pytest.fixture
def github():
    """Mock PyGithub client."""
    return Mock()


@pytest.fixture
def feed(session, rate_limiter, github):
    """Feed wired to mocks."""
    return GitHubFeed(
        token="test-token", session=session, github=github, rate_limit_manager=rate_limiter
    )


@pytest.fixture
def repository():
    return Repository(owner="acme", name="api", display_name="API")


@pytest.fixture
def window():
    return DateWindow(start=BASE_TIME.replace(day=1), end=BASE_TIME)


class TestGitHubFeedInit:
    """Test session setup."""

    def test_auth_header(self, feed, session):
        """The token is sent as a bearer header."""
        assert session.headers["Authorization"] == "Bearer test-token"
        assert session.headers["Accept"] == "application/vnd.github+json"

    def test_no_token(self, session, rate_limiter, github, monkeypatch):
        """Without a token no authorization header is set."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        GitHubFeed(session=session, github=github, rate_limit_manager=rate_limiter)

        assert "Authorization" not in session.headers


class TestListCommits:
    """Test commit page fetching."""

    def test_parses_commits(self, feed, session, repository, window):
        """Commits carry login, subject, timestamp and display name."""
        session.get.return_value = make_response(
            [commit_payload("abc", message="Fix bug\n\nbody")],
            links={"next": {"url": "https://api.github.com/next"}},
        )

        page = asyncio.run(feed.list_commits(repository, window, 1, 100))

        assert page.has_more is True
        commit = page.items[0]
        assert commit.sha == "abc"
        assert commit.author_login == "alice"
        assert commit.subject == "Fix bug"
        assert commit.repository == "API"
        assert commit.timestamp == BASE_TIME

    def test_request_parameters(self, feed, session, repository, window):
        """Window bounds and paging are passed as query parameters."""
        session.get.return_value = make_response([])

        page = asyncio.run(feed.list_commits(repository, window, 2, 50))

        assert page.has_more is False
        args, kwargs = session.get.call_args
        assert args[0] == "https://api.github.com/repos/acme/api/commits"
        assert kwargs["params"] == {
            "since": "2025-03-01T12:00:00Z",
            "until": "2025-03-10T12:00:00Z",
            "per_page": 50,
            "page": 2,
        }

    def test_missing_author(self, feed, session, repository, window):
        """Commits whose author has no GitHub account have no login."""
        session.get.return_value = make_response([commit_payload("abc", login=None)])

        page = asyncio.run(feed.list_commits(repository, window, 1, 100))

        assert page.items[0].author_login is None

    def test_error_status(self, feed, session, repository, window):
        """Non-success responses raise FeedError with the status."""
        session.get.return_value = make_response(
            {"message": "Not Found"}, status_code=404, reason="Not Found"
        )

        with pytest.raises(FeedError) as exc_info:
            asyncio.run(feed.list_commits(repository, window, 1, 100))

        assert exc_info.value.status == 404
        assert "Not Found" in str(exc_info.value)

    def test_network_error(self, feed, session, repository, window):
        """Connection failures become FeedError."""
        session.get.side_effect = requests.ConnectionError("offline")

        with pytest.raises(FeedError, match="offline"):
            asyncio.run(feed.list_commits(repository, window, 1, 100))

    def test_malformed_payload(self, feed, session, repository, window):
        """Items missing required fields become FeedError."""
        session.get.return_value = make_response([{"sha": "abc"}])

        with pytest.raises(FeedError, match="Malformed"):
            asyncio.run(feed.list_commits(repository, window, 1, 100))

    def test_uses_rate_limiter(self, feed, rate_limiter, repository, window, session):
        """Every request goes through the rate limit manager."""
        session.get.return_value = make_response([])

        asyncio.run(feed.list_commits(repository, window, 1, 100))

        rate_limiter.make_rate_limited_request.assert_called_once()


class TestCountCommits:
    """Test count-only requests."""

    def test_count_from_last_link(self, feed, session, repository, window):
        """The last page number of a one-item page is the total."""
        session.get.return_value = make_response(
            [commit_payload("abc")],
            links={"last": {"url": "https://api.github.com/repos/acme/api/commits?per_page=1&page=42"}},
        )

        assert asyncio.run(feed.count_commits(repository, window)) == 42

    def test_count_single_page(self, feed, session, repository, window):
        """Without a last link the payload length is the total."""
        session.get.return_value = make_response([commit_payload("abc")])

        assert asyncio.run(feed.count_commits(repository, window)) == 1

    def test_unreadable_last_link(self, feed, session, repository, window):
        """A non-numeric page in the last link is a FeedError."""
        session.get.return_value = make_response(
            [commit_payload("abc")],
            links={"last": {"url": "https://api.github.com/repos/acme/api/commits?page=last"}},
        )

        with pytest.raises(FeedError, match="Unreadable last page link"):
            asyncio.run(feed.count_commits(repository, window))


class TestSearchMergedPullRequests:
    """Test the label search."""

    def test_query_and_parsing(self, feed, session, repository, window):
        """The search query names repo, label and merge window."""
        session.get.return_value = make_response(
            {
                "total_count": 1,
                "items": [
                    {
                        "number": 12,
                        "labels": [{"name": "copilot"}, {"name": "bug"}],
                        "user": {"login": "alice"},
                        "pull_request": {"merged_at": "2025-03-05T10:00:00Z"},
                    }
                ],
            }
        )

        page = asyncio.run(
            feed.search_merged_pull_requests(repository, "copilot", window, 1, 100)
        )

        query = session.get.call_args.kwargs["params"]["q"]
        assert 'label:"copilot"' in query
        assert "repo:acme/api" in query
        assert "is:merged" in query
        assert "merged:2025-03-01T12:00:00Z..2025-03-10T12:00:00Z" in query
        pr = page.items[0]
        assert pr.number == 12
        assert pr.labels == ("copilot", "bug")
        assert pr.repository == "API"
        assert pr.merge_commit_sha is None


class TestGetMergeCommitSha:
    """Test merge commit lookups through PyGithub."""

    def test_merged_pull(self, feed, github, repository):
        """Merged pulls return their merge commit SHA."""
        github.get_repo.return_value.get_pull.return_value = Mock(
            merged=True, merge_commit_sha="merge123"
        )

        assert asyncio.run(feed.get_merge_commit_sha(repository, 12)) == "merge123"
        github.get_repo.assert_called_once_with("acme/api", lazy=True)

    def test_unmerged_pull(self, feed, github, repository):
        """Unmerged pulls have no merge commit."""
        github.get_repo.return_value.get_pull.return_value = Mock(
            merged=False, merge_commit_sha="test-merge"
        )

        assert asyncio.run(feed.get_merge_commit_sha(repository, 12)) is None

    def test_github_error(self, feed, github, repository):
        """PyGithub errors become FeedError."""
        github.get_repo.return_value.get_pull.side_effect = GithubException(
            404, {"message": "Not Found"}, None
        )

        with pytest.raises(FeedError) as exc_info:
            asyncio.run(feed.get_merge_commit_sha(repository, 12))

        assert exc_info.value.status == 404

    def test_lookup_uses_rate_limiter(self, feed, github, rate_limiter, repository):
        """Pull request lookups are paced by the rate limit manager."""
        github.get_repo.return_value.get_pull.return_value = Mock(
            merged=True, merge_commit_sha="merge123"
        )

        asyncio.run(feed.get_merge_commit_sha(repository, 12))

        rate_limiter.make_rate_limited_request.assert_called_once()
        github.get_repo.return_value.get_pull.assert_called_once_with(12)

    def test_exhausted_quota(self, feed, github, rate_limiter, repository):
        """A spent quota surfaces as FeedError without calling GitHub."""
        rate_limiter.make_rate_limited_request.side_effect = RateLimitExhaustedError(
            "rate limit exceeded"
        )

        with pytest.raises(FeedError, match="rate limit exceeded"):
            asyncio.run(feed.get_merge_commit_sha(repository, 12))

        github.get_repo.assert_not_called()
