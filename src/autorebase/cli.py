"""
Command-line interface for the automatic rebase tool.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .rebase_orchestrator import AutoRebaseOrchestrator
from .git_manager import discover_repo_path
from .models import AutorebaseError, BranchInfo, BranchStatus, Eligibility, RunSummary, Skip
from . import __version__ as PACKAGE_VERSION


console = Console(stderr=True)
logger = logging.getLogger(__name__)

LOG_FILE_STEM = "autorebase"

_STATUS_STYLES = {
    BranchStatus.SUCCEEDED: "green",
    BranchStatus.CONFLICTED: "red",
    BranchStatus.SKIPPED: "dim",
    BranchStatus.UP_TO_DATE: "cyan",
}


def _print_version(ctx, param, value):
    """Eager option callback to print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"autorebase {PACKAGE_VERSION}")
    ctx.exit()


def _default_log_path() -> Path:
    """Log file location: $AUTOREBASE_LOG or ~/.autorebase/autorebase.log."""
    env_path = os.environ.get("AUTOREBASE_LOG")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".autorebase" / f"{LOG_FILE_STEM}.log"


def setup_logging(
    verbose: bool = False, console_level: Optional[str] = None, log_file: Optional[Path] = None
) -> Path:
    """Configure root logging and return the aggregate log path.

    Every run writes DEBUG records to its own timestamped file and to a
    rotating aggregate log next to it. Console output through rich is only
    enabled with --verbose or --log-level.
    """
    aggregate_path = Path(log_file) if log_file else _default_log_path()
    aggregate_path.parent.mkdir(parents=True, exist_ok=True)
    stem = aggregate_path.stem or LOG_FILE_STEM
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    per_run_path = aggregate_path.parent / f"{stem}-{timestamp}.log"

    root = logging.getLogger()
    # Repeated invocations (tests) must not stack handlers
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    file_fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    run_handler = logging.FileHandler(str(per_run_path), encoding="utf-8")
    run_handler.setLevel(logging.DEBUG)
    run_handler.setFormatter(file_fmt)
    root.addHandler(run_handler)

    aggregate_handler = RotatingFileHandler(
        str(aggregate_path), maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    aggregate_handler.setLevel(logging.DEBUG)
    aggregate_handler.setFormatter(file_fmt)
    root.addHandler(aggregate_handler)

    if verbose or console_level:
        level = logging.getLevelName((console_level or "info").upper())
        console_handler = RichHandler(console=console, show_path=False)
        console_handler.setLevel(level if isinstance(level, int) else logging.INFO)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(console_handler)

    return aggregate_path


def _maybe_print_log_notice(verbose: bool, console_level: Optional[str], log_path: Path) -> None:
    if verbose or console_level:
        return
    console.print(f"[dim]Logs are written to {log_path}. Use -v or --log-level for console logs.[/dim]")


@click.group()
@click.option(
    "--version",
    "-V",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose console logging (INFO)")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Console log level. By default, console logging is disabled.",
)
@click.option(
    "--repo-path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Path inside the repository (defaults to the repository enclosing the current directory)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_level: Optional[str], repo_path: Optional[Path]) -> None:
    """autorebase - Keep local branches rebased onto an updated mainline."""
    log_path = setup_logging(verbose, console_level=log_level)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["console_level"] = log_level
    ctx.obj["log_path"] = log_path
    ctx.obj["repo_path"] = repo_path.resolve() if isinstance(repo_path, Path) else None
    logger.debug(f"CLI init: cwd={Path.cwd()} repo_path={ctx.obj['repo_path']}")


def _make_orchestrator(ctx: click.Context, onto: str = "master") -> AutoRebaseOrchestrator:
    repo_path = discover_repo_path(ctx.obj.get("repo_path"))
    return AutoRebaseOrchestrator(repo_path, onto)


@cli.command()
@click.option(
    "--onto",
    default="master",
    show_default=True,
    envvar="AUTOREBASE_ONTO",
    help="Mainline branch to rebase onto.",
)
@click.option("--dry-run", is_flag=True, help="Show which branches would be rebased without changing anything")
@click.pass_context
def run(ctx: click.Context, onto: str, dry_run: bool) -> None:
    """
    Rebase every eligible local branch onto ONTO.

    Branches that track an upstream, are checked out in a worktree, or
    conflicted last time without changing since are left alone.
    """
    try:
        _maybe_print_log_notice(ctx.obj.get("verbose"), ctx.obj.get("console_level"), ctx.obj.get("log_path"))
        orchestrator = _make_orchestrator(ctx, onto)

        if dry_run:
            _display_plan(orchestrator.plan(), onto)
            console.print("\n🔍 Dry run complete - no changes made")
            return

        with console.status(f"Rebasing branches onto {onto}..."):
            summary = orchestrator.run()

        _display_summary(summary)
    except AutorebaseError as e:
        console.print(f"\n❌ Autorebase error: {e}", style="bold red")
        logger.debug("Run aborted due to AutorebaseError", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n🚫 Interrupted; the next run will clean up the scratch worktree", style="bold yellow")
        logger.debug("Run interrupted", exc_info=True)
        sys.exit(130)
    except Exception as e:
        console.print(f"\n💥 Unexpected error: {e}", style="bold red")
        if ctx.obj.get("verbose"):
            console.print_exception()
        logger.debug("Unexpected error during run", exc_info=True)
        sys.exit(1)


@cli.group()
@click.pass_context
def conflicts(ctx: click.Context) -> None:
    """Inspect or clear remembered rebase conflicts."""
    pass


@conflicts.command("list")
@click.pass_context
def conflicts_list(ctx: click.Context) -> None:
    """List branches that will be skipped until they change."""
    try:
        orchestrator = _make_orchestrator(ctx)
        memo = orchestrator.load_memo()
        if not len(memo):
            console.print("No remembered conflicts.")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Branch", style="cyan")
        table.add_column("Commit", style="yellow")
        for branch, commit in sorted(memo.items()):
            table.add_row(branch, commit)
        console.print(table)
    except AutorebaseError as e:
        console.print(f"\n❌ Error listing conflicts: {e}", style="bold red")
        logger.debug("Error in conflicts list", exc_info=True)
        sys.exit(1)


@conflicts.command("clear")
@click.argument("branches", nargs=-1)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation when clearing everything")
@click.pass_context
def conflicts_clear(ctx: click.Context, branches: Tuple[str, ...], yes: bool) -> None:
    """Forget remembered conflicts for BRANCHES (all branches when none are given)."""
    try:
        orchestrator = _make_orchestrator(ctx)
        if not branches and not yes:
            if not click.confirm("Forget all remembered conflicts?", default=False):
                console.print("Operation cancelled.")
                return
        removed = orchestrator.forget_conflicts(list(branches))
        if removed:
            console.print(f"🧹 Forgot {len(removed)} conflict(s): {', '.join(removed)}", style="bold green")
        else:
            console.print("Nothing to forget.")
    except AutorebaseError as e:
        console.print(f"\n❌ Error clearing conflicts: {e}", style="bold red")
        logger.debug("Error in conflicts clear", exc_info=True)
        sys.exit(1)


def _display_plan(plan: List[Tuple[BranchInfo, Eligibility]], onto: str) -> None:
    table = Table(title=f"Plan (onto {onto})", show_header=True, header_style="bold magenta")
    table.add_column("Branch", style="cyan")
    table.add_column("Action")
    for branch, verdict in plan:
        if isinstance(verdict, Skip):
            table.add_row(branch.name, f"[dim]skip: {verdict.reason.value}[/dim]")
        else:
            table.add_row(branch.name, "[green]rebase[/green]")
    console.print(table)


def _display_summary(summary: RunSummary) -> None:
    if not summary.mainline_refreshed:
        console.print(f"[yellow]⚠️  {summary.onto_branch} was not refreshed from its upstream[/yellow]")

    table = Table(title=f"Rebased onto {summary.onto_branch}", show_header=True, header_style="bold magenta")
    table.add_column("Branch", style="cyan")
    table.add_column("Result")
    table.add_column("Old", style="red")
    table.add_column("New", style="green")
    table.add_column("Onto", style="yellow")

    for outcome in summary.outcomes:
        style = _STATUS_STYLES.get(outcome.status, "")
        result = outcome.status.value
        if outcome.skip_reason is not None:
            result = f"skipped ({outcome.skip_reason.value})"
        table.add_row(
            outcome.branch,
            f"[{style}]{result}[/{style}]" if style else result,
            (outcome.original_commit or "")[:8],
            (outcome.final_commit or "")[:8],
            (outcome.rebased_onto or "")[:8],
        )
    console.print(table)

    if summary.conflicted:
        names = ", ".join(o.branch for o in summary.conflicted)
        console.print(f"\n❗ Rebase manually: {names}", style="bold red")
    else:
        console.print("\n🎉 Done", style="bold green")


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n🚫 Operation cancelled by user", style="bold yellow")
        sys.exit(130)


if __name__ == "__main__":
    main()
