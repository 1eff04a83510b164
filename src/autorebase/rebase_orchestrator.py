"""
Main control loop: rebase every eligible local branch onto the mainline.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .branch_catalog import BranchCatalog
from .conflict_memo import ConflictMemo
from .eligibility import evaluate_branch
from .git_manager import GitCommandRunner, GitManager, branch_ref, discover_repo_path
from .models import (
    AutorebasePaths,
    BranchInfo,
    BranchOutcome,
    BranchStatus,
    Eligibility,
    RebaseResult,
    RunSummary,
    Skip,
)
from .rebase_executor import RebaseAttemptExecutor
from .target_resolver import TargetResolver
from .worktree_manager import ScratchWorktree


logger = logging.getLogger(__name__)


class AutoRebaseOrchestrator:
    """Rebases local topic branches onto the newest mainline commit they apply to cleanly."""

    def __init__(
        self,
        repo_path: Optional[Path] = None,
        onto_branch: str = "master",
        runner: Optional[GitCommandRunner] = None,
    ) -> None:
        """Initialize the orchestrator for the repository at (or enclosing) `repo_path`."""
        self.repo_path = Path(repo_path).resolve() if repo_path else discover_repo_path()
        self.onto_branch = onto_branch
        self.git_manager = GitManager(self.repo_path, runner)
        self.paths = AutorebasePaths(self.git_manager.git_common_dir())

        self.catalog = BranchCatalog(self.git_manager)
        self.resolver = TargetResolver(self.git_manager)
        self.worktree = ScratchWorktree(self.git_manager, self.paths.worktree_path)
        self.executor = RebaseAttemptExecutor(self.worktree)
        logger.info(f"Initialized autorebase for {self.repo_path} onto {onto_branch}")

    def load_memo(self) -> ConflictMemo:
        return ConflictMemo.load(self.paths.conflicts_file)

    def run(self) -> RunSummary:
        """
        Rebase every eligible branch and return what happened to each one.

        Raises:
            AutorebaseError: on any fatal failure. Memo changes made before the
                failure stay on disk.
        """
        memo = self.load_memo()
        self.worktree.ensure()
        self.worktree.recover()

        branches = self.catalog.list_branches()
        summary = RunSummary(onto_branch=self.onto_branch)
        summary.mainline_refreshed = self.refresh_mainline(branches)

        for branch in branches:
            summary.outcomes.append(self.process_branch(branch, memo))

        logger.info(
            f"Run complete: {len(summary.succeeded)} rebased, {len(summary.conflicted)} conflicted, "
            f"{len(summary.skipped)} skipped, {len(summary.up_to_date)} up to date"
        )
        return summary

    def plan(self) -> List[Tuple[BranchInfo, Eligibility]]:
        """Evaluate eligibility for every branch without changing anything."""
        memo = self.load_memo()
        return [
            (
                branch,
                evaluate_branch(
                    branch,
                    self.onto_branch,
                    memo,
                    lambda name=branch.name: self.git_manager.rev_parse(branch_ref(name)),
                ),
            )
            for branch in self.catalog.list_branches()
        ]

    def refresh_mainline(self, branches: List[BranchInfo]) -> bool:
        """Fast-forward the mainline from its upstream when it is free to check out."""
        onto = self.catalog.find(branches, self.onto_branch)
        if onto is None:
            logger.warning(f"Warning: {self.onto_branch} not found")
            return False
        if onto.is_checked_out:
            logger.warning(f"Not pulling {onto.name} because it is checked out")
            return False

        self.worktree.checkout(onto.name)
        try:
            pulled = self.git_manager.pull_ff_only(self.worktree.path)
        finally:
            self.worktree.detach()
        return pulled

    def process_branch(self, branch: BranchInfo, memo: ConflictMemo) -> BranchOutcome:
        """Apply the skip rules to one branch and rebase it if none match."""
        outcome = BranchOutcome(branch=branch.name)
        verdict = evaluate_branch(
            branch,
            self.onto_branch,
            memo,
            lambda: self.git_manager.rev_parse(branch_ref(branch.name)),
        )
        if isinstance(verdict, Skip):
            logger.info(f"Skipping branch {branch.name} because {verdict.reason.description}")
            outcome.status = BranchStatus.SKIPPED
            outcome.skip_reason = verdict.reason
            return outcome

        outcome.status = BranchStatus.IN_PROGRESS
        outcome.original_commit = self.git_manager.rev_parse(branch_ref(branch.name))

        # This run may succeed even if the previous one did not.
        memo.forget(branch.name)
        memo.save()

        return self._rebase_branch(branch.name, memo, outcome)

    def _rebase_branch(
        self, branch: str, memo: ConflictMemo, outcome: BranchOutcome
    ) -> BranchOutcome:
        candidates = self.resolver.resolve(branch, self.onto_branch)
        if not candidates:
            logger.info(f"{branch} already contains {self.onto_branch}; nothing to do")
            outcome.status = BranchStatus.UP_TO_DATE
            outcome.final_commit = outcome.original_commit
            return outcome

        logger.info(f"Rebasing {branch}")
        self.worktree.checkout(branch)
        try:
            outcome.status = self._try_candidates(branch, candidates, outcome)
        finally:
            self.worktree.detach()

        # A failed attempt may have amended the branch before it was aborted.
        outcome.final_commit = self.git_manager.rev_parse(branch_ref(branch))
        if outcome.status == BranchStatus.CONFLICTED:
            memo.remember(branch, outcome.final_commit)
            memo.save()
            logger.warning(
                f"Could not rebase {branch} onto any of {len(candidates)} target(s); "
                f"it will be skipped until it changes"
            )
        return outcome

    def _try_candidates(
        self, branch: str, candidates: Sequence[str], outcome: BranchOutcome
    ) -> BranchStatus:
        for target in candidates:
            outcome.attempts += 1
            logger.info(f"Rebasing {branch} onto {target}")
            if self.executor.attempt(target) == RebaseResult.SUCCESS:
                outcome.rebased_onto = target
                return BranchStatus.SUCCEEDED
        return BranchStatus.CONFLICTED

    def forget_conflicts(self, branches: Optional[Sequence[str]] = None) -> List[str]:
        """Drop memo entries (all of them when `branches` is empty) and save."""
        memo = self.load_memo()
        if branches:
            removed = [b for b in branches if memo.forget(b)]
        else:
            removed = sorted(b for b, _ in memo.items())
            memo.clear()
        memo.save()
        return removed
