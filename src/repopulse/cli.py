"""Command-line interface for repopulse."""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import structlog
import typer
from rich.console import Console
from rich.table import Table

from repopulse.analytics import analyze_repository
from repopulse.extraction import CommitWalker
from repopulse.models import RepositoryHandle, Settings, SyncOutcome, SyncStatus
from repopulse.status import StatusProbe
from repopulse.sync import BranchManager, SyncCoordinator

app = typer.Typer(
    name="repopulse",
    help="Repository status, push/pull recovery and commit history analytics",
    add_completion=False,
)
console = Console()

_RECOVERY_HINTS = {
    SyncStatus.NEEDS_UPSTREAM: "The branch has no upstream. Run [bold]repopulse push-upstream[/bold].",
    SyncStatus.NEEDS_PULL: "The remote has new commits. Run [bold]repopulse pull-and-push[/bold].",
}


def configure_logging(level: str) -> None:
    """Route structlog output to stderr, filtered at ``level``."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _setup(repo_path: Path, verbose: bool = False) -> Tuple[RepositoryHandle, Settings]:
    settings = Settings()
    configure_logging("DEBUG" if verbose else settings.log_level)
    return RepositoryHandle(path=repo_path.resolve()), settings


def _report(outcome: SyncOutcome) -> None:
    """Print a sync outcome and exit non-zero unless it succeeded."""
    for step in outcome.steps:
        marker = "[green]✓[/green]" if step.status is SyncStatus.SUCCESS else "[red]✗[/red]"
        console.print(f"  {marker} {step.operation}: {step.status.value}")

    if outcome.status is SyncStatus.SUCCESS:
        console.print(f"[bold green]✓[/bold green] {outcome.operation} succeeded")
        if outcome.commit_hash:
            console.print(f"[cyan]Commit:[/cyan] {outcome.commit_hash}")
        return

    console.print(f"[bold red]✗[/bold red] {outcome.operation}: {outcome.status.value}")
    if outcome.reason:
        console.print(outcome.reason, markup=False)
    hint = _RECOVERY_HINTS.get(outcome.status)
    if hint:
        console.print(hint)
    raise typer.Exit(1)


@app.command()
def status(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    as_json: bool = typer.Option(False, "--json", help="Print the snapshot as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Show the reconciled status of a repository."""
    handle, settings = _setup(repo_path, verbose)
    snapshot = StatusProbe(settings).get_status(handle)

    if as_json:
        console.print_json(snapshot.model_dump_json())
        return

    if not snapshot.is_repo:
        console.print(f"[yellow]Not a git repository:[/yellow] {handle.path}")
        return

    console.print(f"[cyan]Branch:[/cyan] {snapshot.current_branch or '(detached)'}")
    console.print(f"[cyan]Remote:[/cyan] {'yes' if snapshot.has_remote else 'no'}")
    console.print(f"[cyan]Uncommitted changes:[/cyan] {snapshot.uncommitted_change_count}")
    console.print(f"[cyan]Unpushed commits:[/cyan] {snapshot.unpushed_commit_count}")
    console.print(f"[cyan]Conflicts:[/cyan] {'yes' if snapshot.has_conflicts else 'no'}")
    console.print(f"[cyan]Dirty:[/cyan] {'yes' if snapshot.is_dirty else 'no'}")
    if snapshot.last_commit_hash:
        console.print(f"[cyan]Last commit:[/cyan] {snapshot.last_commit_hash[:7]} {snapshot.last_commit_message}")


@app.command()
def files(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
) -> None:
    """List changed files, staged and unstaged."""
    handle, settings = _setup(repo_path)
    changes = StatusProbe(settings).list_file_changes(handle)

    if not changes:
        console.print("[dim]No changes[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Path", style="white")
    table.add_column("Change", style="yellow")
    table.add_column("Staged", style="green")
    for change in changes:
        path = change.path
        if change.original_path:
            path = f"{change.original_path} → {change.path}"
        table.add_row(path, change.change_kind.value, "yes" if change.staged else "")
    console.print(table)


@app.command()
def remotes(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
) -> None:
    """List configured remotes."""
    handle, settings = _setup(repo_path)
    for remote in StatusProbe(settings).list_remotes(handle):
        console.print(f"[cyan]{remote.name}[/cyan] {remote.fetch_url} [dim](push: {remote.push_url})[/dim]")


@app.command()
def log(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    max_count: Optional[int] = typer.Option(None, "--max", "-n", help="Maximum commits to show"),
    since: Optional[str] = typer.Option(None, "--since", help="Only commits after this date"),
    until: Optional[str] = typer.Option(None, "--until", help="Only commits before this date"),
    author: Optional[str] = typer.Option(None, "--author", help="Only commits by matching authors"),
) -> None:
    """List recent commits with their diff statistics."""
    handle, settings = _setup(repo_path)
    commits = CommitWalker(settings).walk(handle, max_count=max_count, since=since, until=until, author=author)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Hash", style="cyan", width=10)
    table.add_column("Author", style="green")
    table.add_column("Date", style="blue")
    table.add_column("Message", style="white")
    table.add_column("+/-", justify="right", style="yellow")
    table.add_column("Tasks", style="magenta")

    for commit in commits:
        table.add_row(
            commit.short_hash,
            commit.author.name[:20],
            commit.timestamp.strftime("%Y-%m-%d %H:%M"),
            commit.message_summary[:60],
            f"+{commit.insertions} -{commit.deletions}",
            ", ".join(sorted(commit.task_references)),
        )
    console.print(table)


@app.command()
def analyze(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    max_count: Optional[int] = typer.Option(None, "--max", "-n", help="Maximum commits to analyse"),
    since: Optional[str] = typer.Option(None, "--since", help="Only commits after this date"),
    until: Optional[str] = typer.Option(None, "--until", help="Only commits before this date"),
    author: Optional[str] = typer.Option(None, "--author", help="Only commits by matching authors"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the JSON report to a file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Analyse commit history: authors, frequency, churn, velocity and tasks."""
    handle, settings = _setup(repo_path, verbose)
    analysis = analyze_repository(
        handle, max_count=max_count, since=since, until=until, author=author, walker=CommitWalker(settings)
    )
    report = analysis.model_dump_json(by_alias=True, indent=2)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(report)
        console.print(f"[bold green]✓[/bold green] Saved to {output}")
    if as_json:
        console.print_json(report)
        return

    console.print(f"\n[bold]Commits:[/bold] {analysis.total_commits}")
    if not analysis.total_commits:
        return
    console.print(
        f"[bold]Range:[/bold] {analysis.date_range.from_:%Y-%m-%d} → {analysis.date_range.to:%Y-%m-%d}"
    )
    velocity = analysis.code_velocity
    console.print(
        f"[bold]Velocity:[/bold] {velocity.avg_commits_per_day:.2f} commits/day, "
        f"{velocity.avg_lines_changed:.1f} lines/commit "
        f"(+{velocity.total_lines_added} -{velocity.total_lines_deleted})"
    )

    authors = Table(title="Authors", show_header=True, header_style="bold magenta")
    authors.add_column("Author", style="green")
    authors.add_column("Commits", justify="right")
    authors.add_column("+/-", justify="right", style="yellow")
    authors.add_column("Active", style="blue")
    for stats in analysis.authors:
        authors.add_row(
            f"{stats.name} <{stats.email}>",
            str(stats.commit_count),
            f"+{stats.lines_added} -{stats.lines_deleted}",
            f"{stats.first_commit:%Y-%m-%d} → {stats.last_commit:%Y-%m-%d}",
        )
    console.print(authors)

    churn = Table(title="Most changed files", show_header=True, header_style="bold magenta")
    churn.add_column("File", style="white")
    churn.add_column("Changes", justify="right", style="yellow")
    for path, count in list(analysis.file_change_patterns.items())[:10]:
        churn.add_row(path, str(count))
    console.print(churn)

    if analysis.task_references:
        console.print("\n[bold]Task references:[/bold]")
        for task_id, task_commits in analysis.task_references.items():
            hashes = ", ".join(commit.short_hash for commit in task_commits)
            console.print(f"  [magenta]{task_id}[/magenta]: {hashes}")


@app.command()
def push(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    remote: Optional[str] = typer.Option(None, "--remote", "-r", help="Remote to push to"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to push"),
) -> None:
    """Push the current branch."""
    handle, settings = _setup(repo_path)
    _report(SyncCoordinator(settings).push(handle, remote=remote, branch=branch))


@app.command("push-upstream")
def push_upstream(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    remote: Optional[str] = typer.Option(None, "--remote", "-r", help="Remote to push to"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to push"),
) -> None:
    """Push and set the upstream tracking branch."""
    handle, settings = _setup(repo_path)
    _report(SyncCoordinator(settings).push_with_upstream(handle, remote=remote, branch=branch))


@app.command()
def pull(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    remote: Optional[str] = typer.Option(None, "--remote", "-r", help="Remote to pull from"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to pull"),
) -> None:
    """Pull from a remote."""
    handle, settings = _setup(repo_path)
    _report(SyncCoordinator(settings).pull(handle, remote=remote, branch=branch))


@app.command("pull-and-push")
def pull_and_push(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    remote: Optional[str] = typer.Option(None, "--remote", "-r", help="Remote to sync with"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to sync"),
) -> None:
    """Pull remote changes, then push."""
    handle, settings = _setup(repo_path)
    _report(SyncCoordinator(settings).pull_and_push(handle, remote=remote, branch=branch))


@app.command()
def stage(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    paths: Optional[List[str]] = typer.Argument(None, help="Paths to stage (default: everything)"),
) -> None:
    """Stage changes."""
    handle, settings = _setup(repo_path)
    _report(SyncCoordinator(settings).stage(handle, paths))


@app.command()
def unstage(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    paths: Optional[List[str]] = typer.Argument(None, help="Paths to unstage (default: everything)"),
) -> None:
    """Unstage changes, keeping them in the working tree."""
    handle, settings = _setup(repo_path)
    _report(SyncCoordinator(settings).unstage(handle, paths))


@app.command()
def commit(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    message: str = typer.Option(..., "--message", "-m", help="Commit message"),
) -> None:
    """Commit staged changes."""
    handle, settings = _setup(repo_path)
    try:
        outcome = SyncCoordinator(settings).commit(handle, message)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    _report(outcome)


@app.command("add-remote")
def add_remote(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    name: str = typer.Argument(..., help="Remote name"),
    url: str = typer.Argument(..., help="Remote URL"),
) -> None:
    """Add a remote."""
    handle, settings = _setup(repo_path)
    _report(SyncCoordinator(settings).add_remote(handle, name, url))


@app.command()
def init(
    repo_path: Path = typer.Argument(..., help="Directory to initialize"),
) -> None:
    """Initialize a new repository."""
    handle, settings = _setup(repo_path)
    _report(SyncCoordinator(settings).init(handle))


@app.command()
def branches(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    include_remote: bool = typer.Option(False, "--remote", "-r", help="Include remote-tracking branches"),
) -> None:
    """List branches with their tracking state."""
    handle, settings = _setup(repo_path)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("", width=1)
    table.add_column("Branch", style="green")
    table.add_column("Commit", style="cyan")
    table.add_column("Tracking", style="blue")
    table.add_column("↑/↓", justify="right", style="yellow")
    for branch in BranchManager(settings).list_branches(handle, include_remote=include_remote):
        table.add_row(
            "*" if branch.current else "",
            branch.name,
            branch.commit,
            branch.tracking or "",
            f"{branch.ahead}/{branch.behind}" if branch.tracking else "",
        )
    console.print(table)


@app.command("branch-create")
def branch_create(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    name: str = typer.Argument(..., help="New branch name"),
    start_point: Optional[str] = typer.Option(None, "--start-point", "-s", help="Commit to branch from"),
) -> None:
    """Create and check out a branch."""
    handle, settings = _setup(repo_path)
    _report(BranchManager(settings).create_branch(handle, name, start_point))


@app.command("branch-switch")
def branch_switch(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    name: str = typer.Argument(..., help="Branch to check out"),
) -> None:
    """Check out an existing branch."""
    handle, settings = _setup(repo_path)
    _report(BranchManager(settings).switch_branch(handle, name))


@app.command("branch-delete")
def branch_delete(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    name: str = typer.Argument(..., help="Branch to delete"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete even if unmerged"),
) -> None:
    """Delete a local branch."""
    handle, settings = _setup(repo_path)
    _report(BranchManager(settings).delete_branch(handle, name, force=force))


@app.command("set-upstream")
def set_upstream(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    branch: str = typer.Argument(..., help="Local branch"),
    remote: Optional[str] = typer.Option(None, "--remote", "-r", help="Remote name"),
    remote_branch: Optional[str] = typer.Option(None, "--remote-branch", help="Remote branch (default: same name)"),
) -> None:
    """Set the upstream tracking branch of a local branch."""
    handle, settings = _setup(repo_path)
    _report(BranchManager(settings).set_upstream(handle, branch, remote=remote, remote_branch=remote_branch))


@app.command()
def version() -> None:
    """Show version information."""
    from repopulse import __version__

    console.print(f"[bold]repopulse[/bold] version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
