"""
Shared fixtures: a scripted stand-in for the git command line.
"""

from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from autorebase.git_manager import CommandResult


def _short(ref: str) -> str:
    return ref[len("refs/heads/"):] if ref.startswith("refs/heads/") else ref


class FakeGit:
    """Simulates the subset of git the rebase engine uses, without a repository.

    Branch tips live in `commits`; a rebase of the switched-to branch onto a
    target listed in `conflicts[branch]` fails and leaves rebase state behind
    until `rebase --abort`.
    """

    def __init__(self, root: Path) -> None:
        self.repo_path = root.resolve() / "repo"
        self.git_common_dir = self.repo_path / ".git"
        self.worktree_git_dir = self.git_common_dir / "worktrees" / "autorebase_worktree"
        self.repo_path.mkdir(parents=True)
        self.worktree_git_dir.mkdir(parents=True)

        self.branches: List[Tuple[str, str, str]] = []
        self.commits: Dict[str, str] = {}
        self.merge_bases: Dict[Tuple[str, str], str] = {}
        self.logs: Dict[str, List[str]] = {}
        self.conflicts: Dict[str, Set[str]] = {}
        self.amend_on_conflict: Dict[str, str] = {}
        self.failing_switches: Set[str] = set()
        self.pull_ok = True
        self.for_each_ref_output: Optional[bytes] = None

        self.current: Optional[str] = None
        self.calls: List[Tuple[Tuple[str, ...], Path]] = []

    # --- Scenario helpers ---
    @property
    def worktree_path(self) -> Path:
        return self.git_common_dir / "autorebase" / "autorebase_worktree"

    @property
    def conflicts_file(self) -> Path:
        return self.git_common_dir / "autorebase" / "conflicts.toml"

    def add_branch(self, name: str, commit: str, upstream: str = "", worktree: str = "") -> None:
        self.branches.append((name, upstream, worktree))
        self.commits[name] = commit

    def set_candidates(self, branch: str, onto: str, base: str, candidates: List[str]) -> None:
        self.merge_bases[(branch, onto)] = base
        self.logs[f"{base}..{onto}"] = list(candidates)

    def commands(self, name: str) -> List[Tuple[str, ...]]:
        return [args for args, _ in self.calls if args and args[0] == name]

    @property
    def rebasing(self) -> bool:
        return (self.worktree_git_dir / "rebase-merge").exists()

    # --- GitCommandRunner ---
    def execute(self, args, cwd: Path) -> CommandResult:
        args = tuple(args)
        self.calls.append((args, Path(cwd)))
        handler = getattr(self, "_git_" + args[0].replace("-", "_"), None)
        if handler is None:
            return CommandResult(stdout=b"", stderr=f"unsupported: {args}", status=1)
        return handler(args[1:], Path(cwd))

    @staticmethod
    def _ok(text: str = "") -> CommandResult:
        return CommandResult(stdout=text.encode("utf-8"))

    @staticmethod
    def _fail(message: str, status: int = 1) -> CommandResult:
        return CommandResult(stdout=b"", stderr=message, status=status)

    def _git_rev_parse(self, args, cwd):
        if args == ("--git-common-dir",):
            return self._ok(f"{self.git_common_dir}\n")
        if args == ("--git-dir",):
            return self._ok(f"{self.worktree_git_dir}\n")
        ref = _short(args[-1])
        if ref not in self.commits:
            return self._fail("fatal: Needed a single revision", status=128)
        return self._ok(self.commits[ref] + "\n")

    def _git_for_each_ref(self, args, cwd):
        if self.for_each_ref_output is not None:
            return CommandResult(stdout=self.for_each_ref_output)
        lines = [f"{name}\0{upstream}\0{worktree}\n" for name, upstream, worktree in self.branches]
        return self._ok("".join(lines))

    def _git_merge_base(self, args, cwd):
        base = self.merge_bases.get((_short(args[0]), _short(args[1])))
        if base is None:
            return self._fail("")
        return self._ok(base + "\n")

    def _git_log(self, args, cwd):
        base, tip = args[-1].split("..")
        return self._ok("".join(f"{c}\n" for c in self.logs.get(f"{base}..{_short(tip)}", [])))

    def _git_worktree(self, args, cwd):
        Path(args[-1]).mkdir(parents=True)
        return self._ok()

    def _git_switch(self, args, cwd):
        if args[0] in self.failing_switches:
            return self._fail("error: your local changes would be overwritten")
        self.current = args[0]
        return self._ok()

    def _git_checkout(self, args, cwd):
        self.current = None
        return self._ok()

    def _git_pull(self, args, cwd):
        return self._ok() if self.pull_ok else self._fail("fatal: no upstream")

    def _git_rebase(self, args, cwd):
        if args == ("--abort",):
            (self.worktree_git_dir / "rebase-merge").rmdir()
            return self._ok()
        target = args[0]
        branch = self.current
        if target in self.conflicts.get(branch, set()):
            (self.worktree_git_dir / "rebase-merge").mkdir()
            if branch in self.amend_on_conflict:
                self.commits[branch] = self.amend_on_conflict[branch]
            return self._fail("CONFLICT (content): Merge conflict in a.txt")
        self.commits[branch] = f"{branch}-on-{target}"
        return self._ok()


@pytest.fixture()
def fake_git(tmp_path: Path) -> FakeGit:
    return FakeGit(tmp_path)
