"""
Persisted record of branches whose last rebase attempt ended in a conflict.

The memo lives in `<git-dir>/autorebase/conflicts.toml`:

    [branches]
    my-feature = "3f1c0d5e..."

An entry means the last attempt to rebase that branch failed while it pointed
at the recorded commit. Writes are not atomic; a crash mid-write can leave a
truncated file, which the next load reports as an error.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, ItemsView, Optional

import tomli
import tomli_w

from .models import ConflictMemoError


logger = logging.getLogger(__name__)

BRANCHES_TABLE = "branches"


class ConflictMemo:
    """Mapping of branch name to the commit at which its rebase last conflicted."""

    def __init__(self, path: Path, branches: Optional[Dict[str, str]] = None) -> None:
        self.path = Path(path)
        self.branches: Dict[str, str] = dict(branches or {})

    @classmethod
    def load(cls, path: Path) -> ConflictMemo:
        """Load the memo from `path`; a missing file yields an empty memo."""
        path = Path(path)
        if not path.is_file():
            logger.debug(f"No conflict memo at {path}; starting empty")
            return cls(path)
        try:
            content = path.read_text(encoding="utf-8")
            data = tomli.loads(content)
        except (OSError, UnicodeDecodeError) as e:
            raise ConflictMemoError(f"Failed to read {path}: {e}") from e
        except tomli.TOMLDecodeError as e:
            raise ConflictMemoError(f"Malformed conflict memo {path}: {e}") from e

        table = data.get(BRANCHES_TABLE, {})
        if not isinstance(table, dict):
            raise ConflictMemoError(f"'{BRANCHES_TABLE}' in {path} must be a table")
        for branch, commit in table.items():
            if not isinstance(commit, str):
                raise ConflictMemoError(
                    f"Commit for branch '{branch}' in {path} must be a string"
                )
        logger.debug(f"Loaded {len(table)} conflict entries from {path}")
        return cls(path, table)

    def save(self) -> None:
        """Overwrite the memo file with the current entries."""
        data = {BRANCHES_TABLE: dict(self.branches)}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "wb") as f:
                tomli_w.dump(data, f)
        except OSError as e:
            raise ConflictMemoError(f"Failed to write {self.path}: {e}") from e

    def get(self, branch: str) -> Optional[str]:
        return self.branches.get(branch)

    def forget(self, branch: str) -> bool:
        """Drop the entry for `branch`. Returns True if there was one."""
        return self.branches.pop(branch, None) is not None

    def remember(self, branch: str, commit: str) -> None:
        self.branches[branch] = commit

    def clear(self) -> None:
        self.branches.clear()

    def items(self) -> ItemsView[str, str]:
        return self.branches.items()

    def __contains__(self, branch: object) -> bool:
        return branch in self.branches

    def __len__(self) -> int:
        return len(self.branches)
