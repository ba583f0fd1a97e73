"""Push/pull synchronization with failure classification and recovery.

A push ends in one of four states. ``needs_upstream`` is recovered with
:meth:`SyncCoordinator.push_with_upstream` and ``needs_pull`` with
:meth:`SyncCoordinator.pull_and_push`; ``failed`` has no recovery here.

Callers must serialize mutating operations on the same repository path.
"""

from typing import List, Optional, Sequence

import git
import structlog

from repopulse.models import RepositoryHandle, SyncOutcome, SyncStatus
from repopulse.sync.classify import classify_push_failure, rejected_ref_summaries
from repopulse.sync.operations import RepositoryOperations

logger = structlog.get_logger(__name__)

# Always merge: without an explicit strategy git >= 2.34 refuses to pull
# into a diverged branch unless pull.rebase or pull.ff is configured.
PULL_ARGS = ("--no-rebase", "--no-edit")


class SyncCoordinator(RepositoryOperations):
    """Drives push, pull and the other state-changing git operations."""

    def push(
        self,
        handle: RepositoryHandle,
        remote: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> SyncOutcome:
        """Push the current branch.

        Args:
            handle: Repository to push from
            remote: Remote name; git's configured default when omitted
            branch: Branch to push; a branch without a remote uses the
                default remote from settings

        Returns:
            ``success``, ``needs_upstream``, ``needs_pull`` or ``failed``
        """
        repo, failure = self._open(handle, "push")
        if failure is not None:
            return failure

        if branch and not remote:
            remote = self.settings.default_remote
        args = [arg for arg in (remote, branch) if arg]
        return self._push(repo, "push", args, branch=branch)

    def push_with_upstream(
        self,
        handle: RepositoryHandle,
        remote: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> SyncOutcome:
        """Push and record the pushed branch as the upstream tracking branch.

        Args:
            handle: Repository to push from
            remote: Remote name (default from settings)
            branch: Branch to push (defaults to the current branch)

        Returns:
            SyncOutcome; ``failed`` with ``NO_CURRENT_BRANCH`` when no branch
            is given and HEAD is detached
        """
        operation = "push_with_upstream"
        repo, failure = self._open(handle, operation)
        if failure is not None:
            return failure

        remote = remote or self.settings.default_remote
        branch = branch or self._current_branch(repo)
        if not branch:
            return _no_current_branch(operation)
        return self._push(repo, operation, ["--set-upstream", remote, branch], branch=branch)

    def pull(
        self,
        handle: RepositoryHandle,
        remote: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> SyncOutcome:
        """Pull from a remote, merging into the current branch."""
        repo, failure = self._open(handle, "pull")
        if failure is not None:
            return failure

        if branch and not remote:
            remote = self.settings.default_remote
        args = [arg for arg in (remote, branch) if arg]
        return self._run(repo, "pull", "pull", *PULL_ARGS, *args, branch=branch)

    def pull_and_push(
        self,
        handle: RepositoryHandle,
        remote: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> SyncOutcome:
        """Recover from a rejected push by pulling first and pushing again.

        The push is attempted only after a successful pull. When it then
        fails, the outcome is ``failed`` and its ``steps`` hold both the
        successful pull and the failed push.

        Args:
            handle: Repository to synchronize
            remote: Remote name (default from settings)
            branch: Branch to pull and push (defaults to the current branch)

        Returns:
            SyncOutcome whose ``steps`` hold the sub-operation outcomes
        """
        operation = "pull_and_push"
        repo, failure = self._open(handle, operation)
        if failure is not None:
            return failure

        remote = remote or self.settings.default_remote
        branch = branch or self._current_branch(repo)
        if not branch:
            return _no_current_branch(operation)

        pulled = self._run(repo, "pull", "pull", *PULL_ARGS, remote, branch, branch=branch)
        if pulled.status is not SyncStatus.SUCCESS:
            return SyncOutcome.failed(
                operation,
                pulled.reason or "pull failed",
                error_code="PULL_FAILED",
                branch_used=branch,
                steps=(pulled,),
            )

        pushed = self._push(repo, "push", [remote, branch], branch=branch)
        if pushed.status is not SyncStatus.SUCCESS:
            logger.warning("sync.partially_recovered", repo=repo.working_dir, branch=branch)
            return SyncOutcome.failed(
                operation,
                pushed.reason or "push failed",
                error_code="PUSH_AFTER_PULL_FAILED",
                branch_used=branch,
                steps=(pulled, pushed),
            )
        return SyncOutcome.success(operation, branch_used=branch, steps=(pulled, pushed))

    def init(self, handle: RepositoryHandle) -> SyncOutcome:
        """Initialize a repository at the handle's path."""
        try:
            git.Repo.init(handle.path)
        except (git.exc.GitCommandError, OSError) as e:
            logger.warning("sync.failed", operation="init", repo=str(handle), reason=str(e))
            return SyncOutcome.failed("init", str(e), error_code="GIT_ERROR")
        logger.info("sync.succeeded", operation="init", repo=str(handle))
        return SyncOutcome.success("init")

    def stage(self, handle: RepositoryHandle, files: Optional[Sequence[str]] = None) -> SyncOutcome:
        """Add paths to the index (everything when no paths are given)."""
        repo, failure = self._open(handle, "stage")
        if failure is not None:
            return failure
        return self._run(repo, "stage", "add", "--", *_paths(files))

    def unstage(self, handle: RepositoryHandle, files: Optional[Sequence[str]] = None) -> SyncOutcome:
        """Remove paths from the index, keeping working tree changes."""
        repo, failure = self._open(handle, "unstage")
        if failure is not None:
            return failure
        return self._run(repo, "unstage", "reset", "-q", "--", *_paths(files))

    def commit(self, handle: RepositoryHandle, message: str) -> SyncOutcome:
        """Commit the index.

        Raises:
            ValueError: If the message is empty
        """
        if not message or not message.strip():
            raise ValueError("Commit message must not be empty")

        repo, failure = self._open(handle, "commit")
        if failure is not None:
            return failure

        outcome = self._run(repo, "commit", "commit", "-m", message)
        if outcome.status is not SyncStatus.SUCCESS:
            return outcome
        head = self._git(repo, "rev-parse", "HEAD")
        return outcome.model_copy(update={"commit_hash": head.stdout.strip() if head.ok else None})

    def add_remote(self, handle: RepositoryHandle, name: str, url: str) -> SyncOutcome:
        """Register a new remote."""
        repo, failure = self._open(handle, "add_remote")
        if failure is not None:
            return failure
        return self._run(repo, "add_remote", "remote", "add", name, url)

    def _push(self, repo: git.Repo, operation: str, args: List[str], branch: Optional[str] = None) -> SyncOutcome:
        logger.info("sync.pushing", operation=operation, repo=repo.working_dir, args=args)
        result = self._git(repo, "push", "--porcelain", *args)
        # Some git versions exit 0 even when porcelain output flags a rejected ref
        if result.ok and not rejected_ref_summaries(result.stdout):
            logger.info("sync.succeeded", operation=operation, repo=repo.working_dir)
            return SyncOutcome.success(operation, output=result.stdout.strip() or None, branch_used=branch)

        outcome = classify_push_failure(result, operation)
        logger.warning(
            "sync.push_rejected",
            operation=operation,
            repo=repo.working_dir,
            status=outcome.status.value,
            reason=outcome.reason,
        )
        return outcome.model_copy(update={"branch_used": branch})


def _no_current_branch(operation: str) -> SyncOutcome:
    return SyncOutcome.failed(
        operation, "No current branch to push (HEAD is detached)", error_code="NO_CURRENT_BRANCH"
    )


def _paths(files: Optional[Sequence[str]]) -> List[str]:
    return list(files) if files else ["."]
