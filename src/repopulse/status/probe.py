"""Point-in-time repository status.

Every query here is read-only and never raises for git failures: a path
that cannot be queried is reported as "not a repository" and optional
details fall back to empty values.
"""

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import git
import structlog

from repopulse.gitcmd import current_branch, run_git
from repopulse.models import (
    ChangeKind,
    FileChangeEntry,
    RemoteInfo,
    RepositoryHandle,
    Settings,
    StatusSnapshot,
)

logger = structlog.get_logger(__name__)

STATUS_ARGS = ("--porcelain", "-b", "-z", "-u")

# XY codes git uses for unmerged paths
UNMERGED_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})

_KIND_BY_CODE = {
    "M": ChangeKind.MODIFIED,
    "T": ChangeKind.MODIFIED,
    "A": ChangeKind.ADDED,
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
    "C": ChangeKind.COPIED,
}

_HEADER = re.compile(
    r"^## (?P<head>.+?)(?:\.\.\.(?P<upstream>\S+))?(?: \[(?P<tracking>[^\]]*)\])?$"
)
_AHEAD = re.compile(r"\bahead (\d+)")


@dataclass
class PorcelainEntry:
    code: str
    path: str
    original_path: Optional[str] = None


@dataclass
class PorcelainStatus:
    """Parsed ``git status --porcelain -b -z`` output."""

    head: Optional[str] = None
    upstream: Optional[str] = None
    tracking: Optional[str] = None
    entries: List[PorcelainEntry] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return any(entry.code in UNMERGED_CODES for entry in self.entries)


def parse_porcelain(output: str) -> PorcelainStatus:
    """Parse NUL-separated porcelain v1 status output.

    Args:
        output: Output of ``git status --porcelain -b -z``

    Returns:
        PorcelainStatus with the branch header and one entry per path
    """
    status = PorcelainStatus()
    fields = output.split("\0")
    i = 0
    while i < len(fields):
        item = fields[i]
        i += 1
        if not item:
            continue
        if item.startswith("## "):
            match = _HEADER.match(item)
            if match:
                status.head = match.group("head")
                status.upstream = match.group("upstream")
                status.tracking = match.group("tracking")
            continue
        code, path = item[:2], item[3:]
        original = None
        # Renames and copies are followed by their source path
        if "R" in code or "C" in code:
            if i < len(fields):
                original = fields[i]
            i += 1
        status.entries.append(PorcelainEntry(code=code, path=path, original_path=original))
    return status


def parse_ahead_count(tracking: Optional[str]) -> int:
    """Extract N from a tracking descriptor such as ``ahead 3, behind 1``."""
    if not tracking:
        return 0
    match = _AHEAD.search(tracking)
    return int(match.group(1)) if match else 0


def entries_to_changes(entries: List[PorcelainEntry]) -> List[FileChangeEntry]:
    """Convert porcelain entries into staged and unstaged change entries.

    A partially staged path yields one staged and one unstaged entry.
    """
    changes = []
    for entry in entries:
        if entry.code == "??":
            changes.append(FileChangeEntry(path=entry.path, change_kind=ChangeKind.UNTRACKED))
            continue
        if entry.code == "!!":
            continue
        if entry.code in UNMERGED_CODES:
            changes.append(FileChangeEntry(path=entry.path, change_kind=ChangeKind.MODIFIED))
            continue

        index_code, worktree_code = entry.code[0], entry.code[1]
        if index_code in _KIND_BY_CODE:
            kind = _KIND_BY_CODE[index_code]
            changes.append(
                FileChangeEntry(
                    path=entry.path,
                    change_kind=kind,
                    staged=True,
                    original_path=entry.original_path if kind in (ChangeKind.RENAMED, ChangeKind.COPIED) else None,
                )
            )
        if worktree_code in _KIND_BY_CODE:
            changes.append(
                FileChangeEntry(path=entry.path, change_kind=_KIND_BY_CODE[worktree_code], staged=False)
            )
    return changes


class StatusProbe:
    """Computes reconciled status snapshots of a repository."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    def get_status(self, handle: RepositoryHandle) -> StatusSnapshot:
        """Compute the current status of a repository.

        Args:
            handle: Repository to probe

        Returns:
            StatusSnapshot; the all-zero snapshot when the path cannot be
            queried as a repository
        """
        porcelain = self._read_status(handle)
        if porcelain is None:
            return StatusSnapshot.not_a_repository()
        repo, status = porcelain

        try:
            with ThreadPoolExecutor(max_workers=3) as pool:
                branch_future = pool.submit(current_branch, repo, self.settings.git_timeout)
                last_commit_future = pool.submit(self._last_commit, repo)
                remotes_future = pool.submit(self._remote_names, repo)
            branch = branch_future.result()
            last_hash, last_message = last_commit_future.result()
            has_remote = bool(remotes_future.result())
        except git.exc.GitError as e:
            logger.warning("status.query_failed", repo=str(handle), error=str(e))
            return StatusSnapshot.not_a_repository()

        unpushed = 0
        if has_remote and branch:
            unpushed = parse_ahead_count(status.tracking)

        return StatusSnapshot(
            is_repo=True,
            has_remote=has_remote,
            current_branch=branch,
            uncommitted_change_count=len(status.entries),
            unpushed_commit_count=unpushed,
            has_conflicts=status.has_conflicts,
            last_commit_hash=last_hash,
            last_commit_message=last_message,
        )

    def list_file_changes(self, handle: RepositoryHandle) -> List[FileChangeEntry]:
        """List changed paths, keeping staged and unstaged changes apart.

        Returns:
            FileChangeEntry list; empty when the path is not a repository
        """
        porcelain = self._read_status(handle)
        if porcelain is None:
            return []
        return entries_to_changes(porcelain[1].entries)

    def list_remotes(self, handle: RepositoryHandle) -> List[RemoteInfo]:
        """List configured remotes with their fetch and push URLs."""
        try:
            repo = handle.open()
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            return []

        result = run_git(repo, "remote", "-v", timeout=self.settings.git_timeout)
        if not result.ok:
            return []

        urls: Dict[str, Dict[str, str]] = {}
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) < 3:
                continue
            name, url, kind = parts[0], parts[1], parts[2].strip("()")
            urls.setdefault(name, {})[kind] = url
        return [
            RemoteInfo(name=name, fetch_url=entry.get("fetch"), push_url=entry.get("push"))
            for name, entry in urls.items()
        ]

    def _read_status(self, handle: RepositoryHandle) -> Optional[Tuple[git.Repo, PorcelainStatus]]:
        try:
            repo = handle.open()
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            logger.debug("status.not_a_repository", repo=str(handle))
            return None

        result = run_git(repo, "status", *STATUS_ARGS, timeout=self.settings.git_timeout)
        if not result.ok:
            logger.debug("status.query_failed", repo=str(handle), reason=result.diagnostic)
            return None
        return repo, parse_porcelain(result.stdout)

    def _last_commit(self, repo: git.Repo) -> Tuple[Optional[str], Optional[str]]:
        result = run_git(repo, "log", "-1", "--format=%H%x1f%s", timeout=self.settings.git_timeout)
        if not result.ok or not result.stdout.strip():
            # Empty repository
            return None, None
        commit_hash, _, subject = result.stdout.strip().partition("\x1f")
        return commit_hash, subject

    def _remote_names(self, repo: git.Repo) -> List[str]:
        result = run_git(repo, "remote", timeout=self.settings.git_timeout)
        if not result.ok:
            return []
        return [name for name in result.stdout.split() if name]
