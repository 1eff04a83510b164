"""
Enumeration of local branches with their upstream and worktree attributes.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .git_manager import GitManager, decode_output
from .models import BranchInfo, GitOutputError


logger = logging.getLogger(__name__)

FIELD_SEPARATOR = b"\x00"
RECORD_SEPARATOR = b"\n"
FIELDS_PER_RECORD = 3


def parse_branch_records(output: bytes) -> List[BranchInfo]:
    """Parse NUL-separated `for-each-ref` records into BranchInfo values.

    Every non-empty line must carry exactly three fields (name, upstream,
    worktree path). Empty upstream or worktree fields mean the attribute is
    absent.
    """
    branches: List[BranchInfo] = []
    for line in output.split(RECORD_SEPARATOR):
        if not line:
            continue
        parts = line.split(FIELD_SEPARATOR)
        if len(parts) != FIELDS_PER_RECORD:
            raise GitOutputError(
                f"for-each-ref parse error, got {len(parts)} parts, expected {FIELDS_PER_RECORD}"
            )
        name, upstream, worktree_path = (
            decode_output(part, "git for-each-ref") for part in parts
        )
        branches.append(
            BranchInfo(
                name=name,
                upstream=upstream or None,
                worktree_path=worktree_path or None,
            )
        )
    return branches


class BranchCatalog:
    """Lists the local branches of a repository."""

    def __init__(self, git_manager: GitManager) -> None:
        self.gm = git_manager

    def list_branches(self) -> List[BranchInfo]:
        branches = parse_branch_records(self.gm.for_each_branch_ref())
        logger.debug(f"Found {len(branches)} local branches")
        return branches

    def find(self, branches: List[BranchInfo], name: str) -> Optional[BranchInfo]:
        for branch in branches:
            if branch.name == name:
                return branch
        return None
