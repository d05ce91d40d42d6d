"""
Main CLI entry point for the AI commit leaderboard.
"""

from datetime import datetime, timezone

import click
from dotenv import load_dotenv

from ..shared_utilities import configure_logging, get_logger
from ..shared_utilities.telemetry import trace_function
from .collector import CollectionError
from .config import ConfigError, LeaderboardConfigManager
from .core import LeaderboardService
from .data_models import DateWindow, Repository
from .output_formatter import TOOL_LABELS, LeaderboardFormatter
from .progress import CollectionProgress, ProgressPhase

# Load environment variables from .env file
load_dotenv()

PHASE_MESSAGES = {
    ProgressPhase.COUNTING: "Counting commits",
    ProgressPhase.FETCHING: "Fetching commits",
    ProgressPhase.FETCHING_PRS: "Searching labeled pull requests",
    ProgressPhase.ANALYZING: "Analyzing commits",
}


class ProgressIndicator:
    """Simple progress indicator for CLI operations."""

    def __init__(self, quiet: bool = False):
        """Initialize progress indicator.

        Args:
            quiet: If True, suppress progress output
        """
        self.quiet = quiet
        self._last: tuple | None = None

    def update(self, progress: CollectionProgress) -> None:
        """Update progress display."""
        if self.quiet:
            return

        # Only redraw when a unit completes or the phase changes
        marker = (progress.phase, progress.completed_repos)
        if marker == self._last:
            return
        self._last = marker

        message = (
            f"{PHASE_MESSAGES[progress.phase]} "
            f"({progress.completed_repos}/{progress.total_repos})"
        )
        if progress.phase == ProgressPhase.FETCHING:
            message += f", {progress.commits_fetched} commits"

        fraction = progress.fraction
        if fraction is not None and progress.phase == ProgressPhase.FETCHING:
            click.echo(f"[{fraction * 100:6.1f}%] {message}", err=True)
        else:
            click.echo(f"[  ---  ] {message}", err=True)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _resolve_window(
    since: datetime | None, until: datetime | None, days: int | None, default_days: int
) -> DateWindow:
    if days is not None and (since or until):
        raise click.UsageError("--days cannot be combined with --since/--until")
    if since is None:
        if until is not None:
            raise click.UsageError("--until requires --since")
        return DateWindow.last_days(days if days is not None else default_days)
    return DateWindow(
        start=_as_utc(since), end=_as_utc(until) or datetime.now(timezone.utc)
    )


@click.command()
@click.option(
    "--repo",
    "repos",
    multiple=True,
    help="Repository as owner/name or owner/name=Display Name (repeatable)",
)
@click.option(
    "--since",
    type=click.DateTime(),
    help="Start of the window (UTC)",
)
@click.option(
    "--until",
    type=click.DateTime(),
    help="End of the window (UTC, default: now)",
)
@click.option(
    "--days",
    type=click.IntRange(min=1),
    help="Analyze the last N days (default from config, 7)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    help="JSON configuration file (or set AI_LEADERBOARD_CONFIG)",
)
@click.option(
    "--label-scan-repo",
    "label_scan_repos",
    multiple=True,
    help="Repository whose merged PRs are scanned for AI labels (repeatable)",
)
@click.option(
    "--no-labels",
    is_flag=True,
    help="Skip pull request label attribution",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    help="Repositories fetched in parallel (default from config, 3)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "csv", "markdown", "yaml"]),
    default="table",
    help="Output format",
    show_default=True,
)
@click.option(
    "--activity",
    is_flag=True,
    help="Include daily activity, adoption cohort and per-author series",
)
@click.option(
    "-o",
    "--output",
    "output_file",
    type=click.Path(),
    help="Output file (default: stdout)",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Suppress progress indicators",
)
@click.option(
    "--token",
    envvar="GITHUB_TOKEN",
    help="GitHub token (or set GITHUB_TOKEN env var)",
)
@click.option(
    "--list-labels",
    is_flag=True,
    help="List PR label rules and exit",
)
@trace_function("ai_leaderboard_main")
def main(
    repos: tuple[str, ...],
    since: datetime | None,
    until: datetime | None,
    days: int | None,
    config_file: str | None,
    label_scan_repos: tuple[str, ...],
    no_labels: bool,
    concurrency: int | None,
    output_format: str,
    activity: bool,
    output_file: str | None,
    quiet: bool,
    token: str | None,
    list_labels: bool,
) -> None:
    """
    Rank contributors by AI-assisted commits.

    Commits are attributed to AI tools from co-author trailers and generated-with
    footers, and optionally from labels on merged pull requests.

    Examples:

        # Last 7 days of one repository
        ai-leaderboard --repo acme/api

        # Several repositories over a fixed window, as JSON
        ai-leaderboard --repo acme/api --repo acme/web --since 2025-01-01 \\
            --until 2025-02-01 --format json

        # Attribute labeled PRs in the API repository
        ai-leaderboard --repo acme/api=API --label-scan-repo API

        # Repositories and label rules from a config file
        ai-leaderboard --config leaderboard.json --format markdown -o report.md
    """
    configure_logging()
    logger = get_logger(__name__)

    try:
        config = LeaderboardConfigManager(config_file).config
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        click.echo(f"Error: {e}", err=True)
        raise click.Abort() from e

    if list_labels:
        click.echo("PR label rules:")
        for rule in config.label_rules:
            state = "enabled" if rule.enabled else "disabled"
            origin = "default" if rule.is_default else "custom"
            click.echo(
                f"  {rule.label:<20} {TOOL_LABELS[rule.tool]:<20} {state:<9} {origin}"
            )
        return

    try:
        repositories = [Repository.parse(repo) for repo in repos] or config.repositories
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--repo") from e

    if not repositories:
        click.echo(
            "Error: No repositories selected. Use --repo or a config file.", err=True
        )
        raise click.Abort()

    window = _resolve_window(since, until, days, config.default_days)
    scan_keys = [] if no_labels else list(label_scan_repos or config.label_scan_repos)
    if not token:
        logger.warning("No GitHub token set, requests are limited to 60 per hour")

    progress = ProgressIndicator(quiet=quiet)
    formatter = LeaderboardFormatter()

    try:
        service = LeaderboardService(
            token=token,
            concurrency=concurrency or config.concurrency,
            page_size=config.page_size,
            max_pages=config.max_pages,
        )
        data = service.build_sync(
            repositories,
            window,
            label_rules=config.label_rules,
            label_scan_repos=scan_keys,
            progress=progress.update,
        )
    except CollectionError as e:
        logger.error(f"Collection failed: {e}")
        for failure in e.failures:
            click.echo(f"  {failure.key}: {failure.error}", err=True)
        click.echo(f"Error: {e}", err=True)
        raise click.Abort() from e
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        click.echo(f"Error: {e}", err=True)
        raise click.Abort() from e

    output_data = formatter.to_output_dict(data, include_activity=activity)
    if output_file:
        path = formatter.save(output_data, output_file, output_format)
        click.echo(f"Output saved to {path}")
    else:
        click.echo(formatter.format(output_data, output_format))


if __name__ == "__main__":
    main()
