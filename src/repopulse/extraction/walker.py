"""Commit history walking."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple, Union

import git
import structlog

from repopulse.extraction.task_refs import TaskReferenceExtractor
from repopulse.gitcmd import run_git
from repopulse.models import CommitAuthor, CommitMetadata, RepositoryHandle, Settings

logger = structlog.get_logger(__name__)

# Unit and record separators keep multi-line messages intact in log output.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = "--format=%H%x1f%an%x1f%ae%x1f%aI%x1f%B%x1e"

DateFilter = Union[datetime, str]


@dataclass(frozen=True)
class DiffStat:
    """Per-file insertion/deletion totals for one commit."""

    files: Tuple[str, ...] = ()
    insertions: int = 0
    deletions: int = 0


def parse_numstat(output: str) -> DiffStat:
    """Parse ``git show --numstat`` output.

    Binary files report ``-`` for both counts; they add nothing to the
    totals but their path is still recorded.

    Args:
        output: Raw numstat output (``insertions\\tdeletions\\tpath`` lines)

    Returns:
        DiffStat for the commit
    """
    files = []
    insertions = 0
    deletions = 0
    for line in output.splitlines():
        parts = line.split("\t", 2)
        if len(parts) != 3:
            continue
        added, removed, path = parts
        files.append(path)
        if added.isdigit():
            insertions += int(added)
        if removed.isdigit():
            deletions += int(removed)
    return DiffStat(tuple(files), insertions, deletions)


class CommitWalker:
    """Walks bounded commit history and collects per-commit metadata.

    The walk is newest first and stops at ``max_count``; there is no
    pagination. Diffstat queries fan out over a small thread pool and a
    failing query degrades that commit to zeroed stats.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        extractor: Optional[TaskReferenceExtractor] = None,
    ) -> None:
        """Initialize the CommitWalker.

        Args:
            settings: Engine settings (defaults loaded from the environment)
            extractor: Task reference extractor applied to each message
        """
        self.settings = settings or Settings()
        self.extractor = extractor or TaskReferenceExtractor()

    def walk(
        self,
        handle: RepositoryHandle,
        max_count: Optional[int] = None,
        since: Optional[DateFilter] = None,
        until: Optional[DateFilter] = None,
        author: Optional[str] = None,
    ) -> List[CommitMetadata]:
        """Collect metadata for the most recent commits.

        Args:
            handle: Repository to walk
            max_count: Maximum number of commits (default from settings)
            since: Only commits after this date
            until: Only commits before this date
            author: Only commits whose author matches this pattern

        Returns:
            CommitMetadata list, newest first. Empty for a repository without
            commits or a path that is not a repository.
        """
        if max_count is None:
            max_count = self.settings.max_commits
        if max_count < 1:
            raise ValueError(f"max_count must be positive, got {max_count}")

        try:
            repo = handle.open()
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            logger.warning("walk.not_a_repository", repo=str(handle))
            return []

        args = [_LOG_FORMAT, f"--max-count={max_count}"]
        if since:
            args.append(f"--since={_format_date(since)}")
        if until:
            args.append(f"--until={_format_date(until)}")
        if author:
            args.append(f"--author={author}")

        result = run_git(repo, "log", *args, timeout=self.settings.git_timeout)
        if not result.ok:
            # Also the path taken by a repository with no commits yet
            logger.info("walk.no_history", repo=str(handle), reason=result.diagnostic)
            return []

        records = _split_records(result.stdout)
        with ThreadPoolExecutor(max_workers=max(1, self.settings.max_workers)) as pool:
            stats = list(pool.map(lambda record: self._diffstat(repo, record[0]), records))

        commits = [self._build_commit(record, stat) for record, stat in zip(records, stats)]
        logger.debug("walk.complete", repo=str(handle), commits=len(commits))
        return commits

    def _diffstat(self, repo: git.Repo, commit_hash: str) -> DiffStat:
        """Fetch numeric diff statistics for a single commit."""
        result = run_git(
            repo,
            "show",
            "--numstat",
            "--no-renames",
            "--format=",
            commit_hash,
            timeout=self.settings.git_timeout,
        )
        if not result.ok:
            logger.warning("walk.diffstat_failed", commit=commit_hash[:7], reason=result.diagnostic)
            return DiffStat()
        return parse_numstat(result.stdout)

    def _build_commit(self, record: Tuple[str, str, str, str, str], stat: DiffStat) -> CommitMetadata:
        commit_hash, name, email, date, message = record
        message = message.strip()
        return CommitMetadata(
            hash=commit_hash,
            message=message,
            author=CommitAuthor(name=name, email=email),
            timestamp=datetime.fromisoformat(date),
            files_changed=stat.files,
            insertions=stat.insertions,
            deletions=stat.deletions,
            task_references=self.extractor.extract(message),
        )


def _split_records(output: str) -> List[Tuple[str, str, str, str, str]]:
    records = []
    for chunk in output.split(_RECORD_SEP):
        chunk = chunk.lstrip("\n")
        if not chunk:
            continue
        fields = chunk.split(_FIELD_SEP, 4)
        if len(fields) != 5:
            logger.warning("walk.malformed_record", record=chunk[:80])
            continue
        records.append(tuple(fields))
    return records


def _format_date(value: DateFilter) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return value
