"""
Rules deciding whether a branch may be rebased in this run.
"""

from __future__ import annotations

from typing import Callable, Union

from .conflict_memo import ConflictMemo
from .models import BranchInfo, Eligibility, Proceed, Skip, SkipReason


def evaluate_branch(
    branch: BranchInfo,
    onto_branch: str,
    memo: ConflictMemo,
    current_commit: Union[str, Callable[[], str]],
) -> Eligibility:
    """
    Evaluate the skip rules in priority order; the first match wins.

    `current_commit` may be a callable so the branch is only resolved when
    the memo rule is actually reached.
    """
    if branch.name == onto_branch:
        return Skip(SkipReason.IS_TARGET)
    if branch.tracks_upstream:
        return Skip(SkipReason.TRACKS_UPSTREAM)
    if branch.is_checked_out:
        return Skip(SkipReason.CHECKED_OUT)

    recorded = memo.get(branch.name)
    if recorded is not None:
        commit = current_commit() if callable(current_commit) else current_commit
        if recorded == commit:
            return Skip(SkipReason.UNCHANGED_SINCE_CONFLICT)
    return Proceed()
