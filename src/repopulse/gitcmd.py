"""Thin wrapper for running git commands through GitPython.

Commands run with exceptions disabled so that callers get the exit status
and both output streams, which the sync layer needs to classify failures.
"""

from dataclasses import dataclass
from typing import Optional

import git
import structlog

logger = structlog.get_logger(__name__)

# Exit status reported when the git executable could not be started at all.
GIT_NOT_FOUND_STATUS = 127


@dataclass(frozen=True)
class GitCommandResult:
    """Exit status and output streams of one git invocation."""

    command: str
    status: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.status == 0

    @property
    def diagnostic(self) -> str:
        """Human-readable failure text, stderr first then stdout."""
        parts = [part.strip() for part in (self.stderr, self.stdout) if part and part.strip()]
        if parts:
            return "\n".join(parts)
        return f"git {self.command} exited with status {self.status}"


def run_git(
    repo: git.Repo,
    command: str,
    *args: str,
    timeout: Optional[float] = None,
) -> GitCommandResult:
    """Run ``git <command> <args>`` in ``repo``'s working tree.

    A command killed by the timeout reports a non-zero status with GitPython's
    timeout message on stderr.

    Args:
        repo: Repository to run in
        command: Git subcommand (``status``, ``symbolic-ref``, ...)
        *args: Arguments passed verbatim
        timeout: Seconds before the subprocess is killed

    Returns:
        GitCommandResult
    """
    # GitPython turns "symbolic_ref" back into "symbolic-ref"
    invoke = getattr(repo.git, command.replace("-", "_"))
    try:
        status, stdout, stderr = invoke(
            *args,
            with_extended_output=True,
            with_exceptions=False,
            kill_after_timeout=timeout,
        )
    except git.exc.GitCommandNotFound as e:
        logger.error("git.not_found", command=command, error=str(e))
        return GitCommandResult(command=command, status=GIT_NOT_FOUND_STATUS, stdout="", stderr=str(e))

    result = GitCommandResult(command=command, status=status, stdout=stdout or "", stderr=stderr or "")
    if not result.ok:
        logger.debug("git.command_failed", command=command, status=status, stderr=result.stderr)
    return result


def current_branch(repo: git.Repo, timeout: Optional[float] = None) -> Optional[str]:
    """Name of the checked out branch, or None when HEAD is detached.

    Unlike ``rev-parse --abbrev-ref`` this also works on a branch with no
    commits yet.
    """
    result = run_git(repo, "symbolic-ref", "--short", "-q", "HEAD", timeout=timeout)
    branch = result.stdout.strip()
    return branch if result.ok and branch else None
