"""
Progress reporting for long-running collection.
"""

from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from ..shared_utilities import get_logger

logger = get_logger(__name__)


class ProgressPhase(Enum):
    COUNTING = "counting"
    FETCHING = "fetching"
    FETCHING_PRS = "fetching-prs"
    ANALYZING = "analyzing"


@dataclass(frozen=True)
class CollectionProgress:
    """Snapshot handed to progress reporters."""

    completed_repos: int = 0
    total_repos: int = 0
    active_repos: int = 0
    commits_fetched: int = 0
    total_commits_estimate: int | None = None
    phase: ProgressPhase = ProgressPhase.COUNTING

    @property
    def fraction(self) -> float | None:
        """Completion ratio for the fetching phase, when an estimate exists."""
        if not self.total_commits_estimate:
            return None
        return min(1.0, self.commits_fetched / self.total_commits_estimate)


ProgressReporter = Callable[[CollectionProgress], None]


class ProgressTracker:
    """
    Single-owner progress state for one collection run.

    Only the event loop running the collection mutates it, so no locking is
    needed; every change is published as an immutable snapshot.
    """

    def __init__(self, reporter: ProgressReporter | None = None, total_repos: int = 0):
        self.reporter = reporter
        self.state = CollectionProgress(total_repos=total_repos)

    def _update(self, **changes) -> None:
        self.state = replace(self.state, **changes)
        if self.reporter is None:
            return
        try:
            self.reporter(self.state)
        except Exception as e:
            # Reporting is observational; a broken reporter must not stop collection
            logger.warning("Progress reporter failed", error=str(e))

    def start_phase(self, phase: ProgressPhase, total_repos: int | None = None) -> None:
        changes = {"phase": phase, "completed_repos": 0, "active_repos": 0}
        if total_repos is not None:
            changes["total_repos"] = total_repos
        self._update(**changes)

    def set_estimate(self, estimate: int | None) -> None:
        self._update(total_commits_estimate=estimate)

    def unit_started(self) -> None:
        self._update(active_repos=self.state.active_repos + 1)

    def unit_finished(self) -> None:
        self._update(
            active_repos=max(0, self.state.active_repos - 1),
            completed_repos=self.state.completed_repos + 1,
        )

    def commits_added(self, count: int) -> None:
        self._update(commits_fetched=self.state.commits_fetched + count)
