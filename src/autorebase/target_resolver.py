"""
Computes the commits a branch may be rebased onto, newest first.
"""

from __future__ import annotations

import logging
from typing import List

from .git_manager import GitManager, branch_ref


logger = logging.getLogger(__name__)


class TargetResolver:
    """Resolves fallback rebase targets along the mainline."""

    def __init__(self, git_manager: GitManager) -> None:
        self.gm = git_manager

    def resolve(self, branch: str, mainline: str) -> List[str]:
        """
        Return mainline commits above the merge-base of `branch` and `mainline`.

        The list starts with the mainline tip and walks back towards, but
        excludes, the merge-base. It is empty when `branch` already contains
        the mainline tip.

        Raises:
            DisjointHistoryError: if the two share no common ancestor.
        """
        mainline_ref = branch_ref(mainline)
        merge_base = self.gm.merge_base(branch_ref(branch), mainline_ref)
        candidates = self.gm.log_range(merge_base, mainline_ref)
        logger.debug(
            f"{len(candidates)} candidate target(s) for {branch} above merge-base {merge_base[:8]}"
        )
        return candidates
