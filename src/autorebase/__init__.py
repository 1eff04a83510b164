"""
autorebase - Keep local topic branches rebased onto an updated mainline.

This package rebases every eligible local branch onto the newest mainline
commit it applies to cleanly, using a detached scratch worktree, and remembers
branches that conflicted so they are not retried until they change.
"""

__version__ = "0.1.0"

from .rebase_orchestrator import AutoRebaseOrchestrator
from .models import (
    BranchInfo,
    BranchOutcome,
    BranchStatus,
    RebaseResult,
    RunSummary,
    SkipReason,
    AutorebaseError,
)
from .git_manager import GitManager, GitPythonRunner
from .branch_catalog import BranchCatalog
from .conflict_memo import ConflictMemo
from .target_resolver import TargetResolver
from .rebase_executor import RebaseAttemptExecutor
from .worktree_manager import ScratchWorktree

__all__ = [
    "AutoRebaseOrchestrator",
    "BranchInfo",
    "BranchOutcome",
    "BranchStatus",
    "RebaseResult",
    "RunSummary",
    "SkipReason",
    "AutorebaseError",
    "GitManager",
    "GitPythonRunner",
    "BranchCatalog",
    "ConflictMemo",
    "TargetResolver",
    "RebaseAttemptExecutor",
    "ScratchWorktree",
]
