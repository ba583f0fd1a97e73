"""Branch listing and branch management."""

import re
from typing import List, Optional

import git
import structlog

from repopulse.models import BranchInfo, RepositoryHandle, SyncOutcome
from repopulse.sync.operations import RepositoryOperations

logger = structlog.get_logger(__name__)

_REF_FORMAT = "--format=%(refname)%1f%(objectname:short)%1f%(upstream:short)%1f%(upstream:track)%1f%(HEAD)"
_AHEAD = re.compile(r"\bahead (\d+)")
_BEHIND = re.compile(r"\bbehind (\d+)")


def parse_ref_line(line: str) -> Optional[BranchInfo]:
    """Parse one line of ``git for-each-ref`` output produced with ``_REF_FORMAT``.

    Returns None for symbolic refs such as ``origin/HEAD``.
    """
    fields = line.split("\x1f")
    if len(fields) != 5:
        return None
    refname, commit, upstream, track, head = fields

    if refname.startswith("refs/heads/"):
        name = refname[len("refs/heads/"):]
        is_remote = False
    elif refname.startswith("refs/remotes/"):
        name = refname[len("refs/remotes/"):]
        if name.endswith("/HEAD"):
            return None
        is_remote = True
    else:
        return None

    ahead = _AHEAD.search(track)
    behind = _BEHIND.search(track)
    return BranchInfo(
        name=name,
        current=head.strip() == "*",
        commit=commit,
        tracking=upstream or None,
        ahead=int(ahead.group(1)) if ahead else 0,
        behind=int(behind.group(1)) if behind else 0,
        is_remote=is_remote,
    )


class BranchManager(RepositoryOperations):
    """Lists, creates, switches and deletes branches."""

    def list_branches(self, handle: RepositoryHandle, include_remote: bool = False) -> List[BranchInfo]:
        """List local (and optionally remote-tracking) branches.

        Args:
            handle: Repository to inspect
            include_remote: Whether to include ``refs/remotes`` branches

        Returns:
            BranchInfo list; empty when the path is not a repository
        """
        try:
            repo = handle.open()
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            return []

        refs = ["refs/heads"]
        if include_remote:
            refs.append("refs/remotes")
        result = self._git(repo, "for-each-ref", _REF_FORMAT, *refs)
        if not result.ok:
            logger.debug("branches.list_failed", repo=str(handle), reason=result.diagnostic)
            return []

        branches = []
        for line in result.stdout.splitlines():
            info = parse_ref_line(line)
            if info is not None:
                branches.append(info)
        return branches

    def branch_info(self, handle: RepositoryHandle, name: str) -> Optional[BranchInfo]:
        """Look up a single branch by name (``feature`` or ``origin/feature``)."""
        for branch in self.list_branches(handle, include_remote=True):
            if branch.name == name:
                return branch
        return None

    def create_branch(
        self, handle: RepositoryHandle, name: str, start_point: Optional[str] = None
    ) -> SyncOutcome:
        """Create a branch and check it out."""
        repo, failure = self._open(handle, "create_branch")
        if failure is not None:
            return failure
        args = ["-b", name]
        if start_point:
            args.append(start_point)
        return self._run(repo, "create_branch", "checkout", *args, branch=name)

    def switch_branch(self, handle: RepositoryHandle, name: str) -> SyncOutcome:
        repo, failure = self._open(handle, "switch_branch")
        if failure is not None:
            return failure
        return self._run(repo, "switch_branch", "checkout", name, branch=name)

    def delete_branch(self, handle: RepositoryHandle, name: str, force: bool = False) -> SyncOutcome:
        """Delete a local branch; unmerged branches need ``force``."""
        repo, failure = self._open(handle, "delete_branch")
        if failure is not None:
            return failure
        return self._run(repo, "delete_branch", "branch", "-D" if force else "-d", name, branch=name)

    def set_upstream(
        self,
        handle: RepositoryHandle,
        branch: str,
        remote: Optional[str] = None,
        remote_branch: Optional[str] = None,
    ) -> SyncOutcome:
        """Point ``branch`` at ``remote/remote_branch`` (same name by default)."""
        repo, failure = self._open(handle, "set_upstream")
        if failure is not None:
            return failure
        remote = remote or self.settings.default_remote
        upstream = f"{remote}/{remote_branch or branch}"
        return self._run(
            repo, "set_upstream", "branch", f"--set-upstream-to={upstream}", branch, branch=branch
        )
