"""
Data models for the automatic rebase tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union


STATE_DIR_NAME = "autorebase"
CONFLICTS_FILE_NAME = "conflicts.toml"
WORKTREE_DIR_NAME = "autorebase_worktree"


@dataclass
class BranchInfo:
    """A local branch together with its upstream and worktree attributes."""

    name: str
    upstream: Optional[str] = None
    worktree_path: Optional[str] = None

    @property
    def tracks_upstream(self) -> bool:
        return self.upstream is not None

    @property
    def is_checked_out(self) -> bool:
        return self.worktree_path is not None


class RebaseResult(Enum):
    """Outcome of a single rebase attempt onto one target commit."""

    SUCCESS = "success"
    CONFLICT = "conflict"


class SkipReason(Enum):
    """Reasons a branch is left alone by a run."""

    IS_TARGET = "is-target"
    TRACKS_UPSTREAM = "tracks-upstream"
    CHECKED_OUT = "checked-out"
    UNCHANGED_SINCE_CONFLICT = "unchanged-since-conflict"

    @property
    def description(self) -> str:
        return _SKIP_DESCRIPTIONS[self]


_SKIP_DESCRIPTIONS = {
    SkipReason.IS_TARGET: "it is the target",
    SkipReason.TRACKS_UPSTREAM: "it tracks upstream",
    SkipReason.CHECKED_OUT: "it is checked out",
    SkipReason.UNCHANGED_SINCE_CONFLICT: (
        "it had conflicts last time we tried; rebase manually"
    ),
}


@dataclass(frozen=True)
class Proceed:
    """Eligibility verdict: the branch should be rebased."""


@dataclass(frozen=True)
class Skip:
    """Eligibility verdict: the branch must not be touched."""

    reason: SkipReason


Eligibility = Union[Proceed, Skip]


class BranchStatus(Enum):
    """Per-branch state during a run."""

    NOT_STARTED = "not-started"
    SKIPPED = "skipped"
    IN_PROGRESS = "in-progress"
    UP_TO_DATE = "up-to-date"
    SUCCEEDED = "succeeded"
    CONFLICTED = "conflicted"


@dataclass
class BranchOutcome:
    """What happened to one branch during a run."""

    branch: str
    status: BranchStatus = BranchStatus.NOT_STARTED
    skip_reason: Optional[SkipReason] = None
    original_commit: Optional[str] = None
    final_commit: Optional[str] = None
    rebased_onto: Optional[str] = None
    attempts: int = 0


@dataclass
class RunSummary:
    """Outcomes of every branch in the catalog for a single run."""

    onto_branch: str
    outcomes: List[BranchOutcome] = field(default_factory=list)
    mainline_refreshed: bool = False

    def _with_status(self, status: BranchStatus) -> List[BranchOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def succeeded(self) -> List[BranchOutcome]:
        return self._with_status(BranchStatus.SUCCEEDED)

    @property
    def conflicted(self) -> List[BranchOutcome]:
        return self._with_status(BranchStatus.CONFLICTED)

    @property
    def skipped(self) -> List[BranchOutcome]:
        return self._with_status(BranchStatus.SKIPPED)

    @property
    def up_to_date(self) -> List[BranchOutcome]:
        return self._with_status(BranchStatus.UP_TO_DATE)


@dataclass
class AutorebasePaths:
    """Fixed locations under the repository's git directory."""

    git_common_dir: Path

    def __post_init__(self) -> None:
        """Ensure path is absolute."""
        self.git_common_dir = Path(self.git_common_dir).resolve()

    @property
    def state_dir(self) -> Path:
        return self.git_common_dir / STATE_DIR_NAME

    @property
    def conflicts_file(self) -> Path:
        return self.state_dir / CONFLICTS_FILE_NAME

    @property
    def worktree_path(self) -> Path:
        return self.state_dir / WORKTREE_DIR_NAME


class AutorebaseError(Exception):
    """Base exception for automatic rebase operations."""

    pass


class GitRepositoryError(AutorebaseError):
    """Exception raised for Git repository related errors."""

    pass


class GitOutputError(GitRepositoryError):
    """Exception raised when git produces output we cannot parse."""

    pass


class DisjointHistoryError(GitRepositoryError):
    """Exception raised when a branch shares no history with the mainline."""

    pass


class ConflictMemoError(AutorebaseError):
    """Exception raised when the conflict state file cannot be read or written."""

    pass
