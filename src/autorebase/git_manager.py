"""
Git command execution and typed helpers for the commands the rebase engine needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from git import Git, Repo, InvalidGitRepositoryError, NoSuchPathError
from git.exc import GitCommandNotFound

from .models import DisjointHistoryError, GitOutputError, GitRepositoryError


logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured result of a single git invocation."""

    stdout: bytes
    stderr: str = ""
    status: int = 0

    @property
    def success(self) -> bool:
        return self.status == 0


class GitCommandRunner(Protocol):
    """Anything that can run `git <args>` in a working directory."""

    def execute(self, args: Sequence[str], cwd: Path) -> CommandResult:
        ...


class GitPythonRunner:
    """Runs git through GitPython's command wrapper without raising on failure."""

    def execute(self, args: Sequence[str], cwd: Path) -> CommandResult:
        command = ["git", *args]
        logger.debug(f"Running '{' '.join(command)}' in {cwd}")
        try:
            status, stdout, stderr = Git(str(cwd)).execute(
                command,
                with_extended_output=True,
                with_exceptions=False,
                stdout_as_string=False,
                strip_newline_in_stdout=False,
                env={"GIT_EDITOR": "true"},
            )
        except GitCommandNotFound as e:
            raise GitRepositoryError(f"Could not run git in {cwd}: {e}") from e
        if status != 0 and stderr:
            logger.debug(f"git {args[0] if args else ''} exited {status}: {stderr.strip()}")
        return CommandResult(stdout=stdout or b"", stderr=stderr or "", status=status)


def decode_output(data: bytes, what: str) -> str:
    """Decode git output as strict UTF-8."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise GitOutputError(f"Output of {what} is not valid UTF-8: {e}") from e


def branch_ref(name: str) -> str:
    """Fully qualified ref for local branch `name`, so a same-named tag never wins."""
    return f"refs/heads/{name}"


def discover_repo_path(start: Optional[Path] = None) -> Path:
    """Return the working tree root of the repository enclosing `start`."""
    search_path = (start or Path.cwd()).resolve()
    logger.debug(f"Discovering repository in: {search_path}")
    try:
        repo = Repo(search_path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise GitRepositoryError(
            f"No Git repository found at {search_path} or any parent directory"
        ) from e
    if repo.working_tree_dir is None:
        raise GitRepositoryError(f"Repository at {search_path} has no working tree")
    repo_path = Path(repo.working_tree_dir).resolve()
    logger.info(f"Found Git repository at: {repo_path}")
    return repo_path


class GitManager:
    """Issues git commands against one repository and interprets their output."""

    def __init__(self, repo_path: Path, runner: Optional[GitCommandRunner] = None) -> None:
        self.repo_path = Path(repo_path).resolve()
        self.runner: GitCommandRunner = runner or GitPythonRunner()

    # --- Raw execution ---
    def execute(self, args: Sequence[str], cwd: Optional[Path] = None) -> CommandResult:
        return self.runner.execute(list(args), cwd or self.repo_path)

    def run(self, args: Sequence[str], cwd: Optional[Path] = None) -> bytes:
        """Run a git command that must succeed and return its raw stdout."""
        result = self.execute(args, cwd)
        if not result.success:
            message = result.stderr.strip() or f"exit status {result.status}"
            raise GitRepositoryError(f"'git {' '.join(args)}' failed: {message}")
        return result.stdout

    def run_text(self, args: Sequence[str], cwd: Optional[Path] = None) -> str:
        return decode_output(self.run(args, cwd), f"git {args[0]}")

    # --- Repository layout ---
    def _resolve_dir(self, output: str, cwd: Path) -> Path:
        path = Path(output.strip())
        if not path.is_absolute():
            path = cwd / path
        return path.resolve()

    def git_common_dir(self) -> Path:
        """Directory shared by all worktrees of the repository (normally `.git`)."""
        output = self.run_text(["rev-parse", "--git-common-dir"])
        return self._resolve_dir(output, self.repo_path)

    def git_dir(self, cwd: Path) -> Path:
        """Per-worktree git directory for the checkout at `cwd`."""
        output = self.run_text(["rev-parse", "--git-dir"], cwd)
        return self._resolve_dir(output, cwd)

    # --- Refs and history ---
    def for_each_branch_ref(self) -> bytes:
        return self.run(
            [
                "for-each-ref",
                "--format=%(refname:short)%00%(upstream:short)%00%(worktreepath)",
                "refs/heads",
            ]
        )

    def rev_parse(self, ref: str) -> str:
        return self.run_text(["rev-parse", "--verify", ref]).strip()

    def merge_base(self, a: str, b: str) -> str:
        args = ["merge-base", a, b]
        result = self.execute(args)
        output = decode_output(result.stdout, "git merge-base").strip()
        if result.status == 1 or (result.success and not output):
            raise DisjointHistoryError(f"{a} and {b} have no common ancestor")
        if not result.success:
            message = result.stderr.strip() or f"exit status {result.status}"
            raise GitRepositoryError(f"'git {' '.join(args)}' failed: {message}")
        return output

    def log_range(self, base: str, tip: str) -> List[str]:
        """Full hashes of commits in base..tip, newest first."""
        output = self.run_text(["log", "--format=%H", f"{base}..{tip}"])
        return [line.strip() for line in output.splitlines() if line.strip()]

    # --- Working tree operations ---
    def switch(self, branch: str, cwd: Path) -> None:
        self.run(["switch", branch], cwd)
        logger.debug(f"Switched {cwd} to {branch}")

    def detach(self, cwd: Path) -> None:
        self.run(["checkout", "--detach"], cwd)

    def pull_ff_only(self, cwd: Path) -> bool:
        result = self.execute(["pull", "--ff-only"], cwd)
        if not result.success:
            logger.warning(f"Fast-forward pull failed in {cwd}: {result.stderr.strip()}")
        return result.success

    def rebase(self, onto: str, cwd: Path) -> CommandResult:
        """Start a rebase; failure is reported through the result, never raised."""
        return self.execute(["rebase", onto], cwd)

    def rebase_abort(self, cwd: Path) -> None:
        self.run(["rebase", "--abort"], cwd)
        logger.info("Rebase aborted successfully")

    def worktree_add_detached(self, path: Path) -> None:
        path_str = str(path)
        self.run(["worktree", "add", "--detach", path_str])
        logger.info(f"Created scratch worktree at {path_str}")
