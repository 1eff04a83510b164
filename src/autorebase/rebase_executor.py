"""
Single rebase attempts inside the scratch worktree.
"""

from __future__ import annotations

import logging

from .models import RebaseResult
from .worktree_manager import ScratchWorktree


logger = logging.getLogger(__name__)


class RebaseAttemptExecutor:
    """Rebases the branch checked out in the scratch worktree onto one target."""

    def __init__(self, worktree: ScratchWorktree) -> None:
        self.worktree = worktree

    def attempt(self, target: str) -> RebaseResult:
        """
        Rebase onto `target`, restoring a clean state if it fails.

        Any failure counts as a conflict, whether git stopped on conflicting
        content or for another reason. An aborted attempt leaves the branch at
        its pre-attempt tip.
        """
        result = self.worktree.gm.rebase(target, self.worktree.path)
        if result.success:
            logger.info(f"Rebasing onto {target}: success")
            return RebaseResult.SUCCESS

        if result.stderr:
            logger.debug(f"Rebase onto {target} failed: {result.stderr.strip()}")
        if self.worktree.is_rebasing():
            self.worktree.abort_rebase()
        logger.info(f"Rebasing onto {target}: conflict")
        return RebaseResult.CONFLICT
