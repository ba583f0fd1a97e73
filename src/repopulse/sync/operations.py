"""Shared plumbing for operations that change repository state."""

from typing import Optional, Tuple

import git
import structlog

from repopulse.gitcmd import GitCommandResult, current_branch, run_git
from repopulse.models import RepositoryHandle, Settings, SyncOutcome
from repopulse.sync.classify import failure_code

logger = structlog.get_logger(__name__)


class RepositoryOperations:
    """Base class for components that run mutating git commands.

    Mutating operations always return a definite SyncOutcome; git failures
    are reported as ``failed`` outcomes with git's diagnostic text.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    def _open(
        self, handle: RepositoryHandle, operation: str
    ) -> Tuple[Optional[git.Repo], Optional[SyncOutcome]]:
        """Open the repository, or build the failure outcome when it cannot be opened."""
        try:
            return handle.open(), None
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            logger.warning("sync.not_a_repository", repo=str(handle), operation=operation)
            return None, SyncOutcome.failed(
                operation, f"Not a git repository: {handle.path}", error_code="NOT_A_REPOSITORY"
            )

    def _git(self, repo: git.Repo, command: str, *args: str) -> GitCommandResult:
        return run_git(repo, command, *args, timeout=self.settings.git_timeout)

    def _run(
        self,
        repo: git.Repo,
        operation: str,
        command: str,
        *args: str,
        branch: Optional[str] = None,
    ) -> SyncOutcome:
        """Run one git command and report success or an unclassified failure."""
        result = self._git(repo, command, *args)
        if result.ok:
            logger.info("sync.succeeded", operation=operation, repo=repo.working_dir)
            return SyncOutcome.success(operation, output=result.stdout.strip() or None, branch_used=branch)
        logger.warning("sync.failed", operation=operation, repo=repo.working_dir, reason=result.diagnostic)
        return SyncOutcome.failed(
            operation, result.diagnostic, error_code=failure_code(result), branch_used=branch
        )

    def _current_branch(self, repo: git.Repo) -> Optional[str]:
        return current_branch(repo, timeout=self.settings.git_timeout)
