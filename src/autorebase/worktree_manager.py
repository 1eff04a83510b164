"""
Management of the detached scratch worktree used as a sandbox for rebases.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .git_manager import GitManager
from .models import GitRepositoryError


logger = logging.getLogger(__name__)

REBASE_STATE_DIRS = ("rebase-merge", "rebase-apply")


class ScratchWorktree:
    """A single long-lived secondary checkout, left detached between operations."""

    def __init__(self, git_manager: GitManager, path: Path) -> None:
        self.gm = git_manager
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_dir()

    def ensure(self) -> None:
        """Create the detached worktree if it is not there yet."""
        if self.exists():
            return
        try:
            str(self.path).encode("utf-8")
        except UnicodeEncodeError as e:
            raise GitRepositoryError(f"Worktree path is not valid text: {self.path!r}") from e
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.gm.worktree_add_detached(self.path)

    def checkout(self, branch: str) -> None:
        """Switch the worktree to `branch`; failure aborts the run."""
        self.gm.switch(branch, self.path)

    def detach(self) -> None:
        """Detach HEAD so the current branch can be checked out elsewhere."""
        self.gm.detach(self.path)

    def is_rebasing(self) -> bool:
        """Check for in-progress rebase state in the worktree's own git directory."""
        git_dir = self.gm.git_dir(self.path)
        return any((git_dir / name).exists() for name in REBASE_STATE_DIRS)

    def abort_rebase(self) -> None:
        self.gm.rebase_abort(self.path)

    def recover(self) -> bool:
        """
        Undo whatever an interrupted run left in the worktree.

        Any rebase in progress is aborted, then HEAD is detached so no branch
        stays checked out here.

        Returns:
            True if a stale rebase was found and aborted.
        """
        if not self.exists():
            return False
        stale_rebase = self.is_rebasing()
        if stale_rebase:
            logger.warning(
                f"Found an interrupted rebase in {self.path}. Aborting it before continuing."
            )
            self.abort_rebase()
        self.detach()
        return stale_rebase
