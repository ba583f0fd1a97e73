"""Aggregate analytics over commit history.

Aggregation is a pure fold over CommitMetadata: no I/O, and the same input
always produces the same report.
"""

import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from repopulse.extraction.walker import CommitWalker, DateFilter
from repopulse.models import (
    AuthorStats,
    CodeVelocity,
    CommitAnalysis,
    CommitMetadata,
    DateRange,
    RepositoryHandle,
)

logger = structlog.get_logger(__name__)

TOP_FILES_LIMIT = 50
SECONDS_PER_DAY = 86400


@dataclass
class _AuthorAccumulator:
    """Running totals for one author while commits are folded in."""

    name: str
    email: str
    first_commit: datetime
    last_commit: datetime
    commit_count: int = 0
    lines_added: int = 0
    lines_deleted: int = 0

    def add(self, commit: CommitMetadata) -> None:
        self.commit_count += 1
        self.lines_added += commit.insertions
        self.lines_deleted += commit.deletions
        # Widen the window; never recompute it from scratch
        if commit.timestamp < self.first_commit:
            self.first_commit = commit.timestamp
        if commit.timestamp > self.last_commit:
            self.last_commit = commit.timestamp

    def freeze(self) -> AuthorStats:
        return AuthorStats(
            name=self.name,
            email=self.email,
            commit_count=self.commit_count,
            lines_added=self.lines_added,
            lines_deleted=self.lines_deleted,
            first_commit=self.first_commit,
            last_commit=self.last_commit,
        )


def utc_date_key(timestamp: datetime) -> str:
    """Calendar date (YYYY-MM-DD) of a timestamp in UTC.

    Naive timestamps are taken to be UTC already.
    """
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.date().isoformat()


def days_spanned(start: datetime, end: datetime) -> int:
    """Whole days between two timestamps, rounded up, never less than one."""
    seconds = (end - start).total_seconds()
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


class AnalyticsAggregator:
    """Folds a sequence of commits into a CommitAnalysis report."""

    def __init__(self, top_files_limit: int = TOP_FILES_LIMIT) -> None:
        self.top_files_limit = top_files_limit

    def aggregate(self, commits: Sequence[CommitMetadata], now: Optional[datetime] = None) -> CommitAnalysis:
        """Build the analysis report for a list of commits.

        Args:
            commits: Commits to analyse, in any order
            now: Timestamp used as both ends of the date range when there are
                no commits (defaults to the current UTC time)

        Returns:
            CommitAnalysis
        """
        if not commits:
            moment = now or datetime.now(timezone.utc)
            return CommitAnalysis(total_commits=0, date_range=DateRange(from_=moment, to=moment))

        timestamps = [commit.timestamp for commit in commits]
        date_range = DateRange(from_=min(timestamps), to=max(timestamps))

        total_added = sum(commit.insertions for commit in commits)
        total_deleted = sum(commit.deletions for commit in commits)
        days = days_spanned(date_range.from_, date_range.to)

        analysis = CommitAnalysis(
            total_commits=len(commits),
            date_range=date_range,
            authors=self._author_stats(commits),
            commit_frequency=self._commit_frequency(commits),
            file_change_patterns=self._file_change_patterns(commits),
            task_references=self._group_by_task(commits),
            code_velocity=CodeVelocity(
                avg_commits_per_day=len(commits) / days,
                avg_lines_changed=(total_added + total_deleted) / max(1, len(commits)),
                total_lines_added=total_added,
                total_lines_deleted=total_deleted,
            ),
        )
        logger.debug(
            "analytics.aggregated",
            commits=analysis.total_commits,
            authors=len(analysis.authors),
            tasks=len(analysis.task_references),
        )
        return analysis

    def _author_stats(self, commits: Iterable[CommitMetadata]) -> List[AuthorStats]:
        accumulators: Dict[str, _AuthorAccumulator] = {}
        for commit in commits:
            key = commit.author.key
            if key not in accumulators:
                accumulators[key] = _AuthorAccumulator(
                    name=commit.author.name,
                    email=commit.author.email,
                    first_commit=commit.timestamp,
                    last_commit=commit.timestamp,
                )
            accumulators[key].add(commit)

        authors = [accumulator.freeze() for accumulator in accumulators.values()]
        # sorted() is stable, so equal counts keep first-seen order
        return sorted(authors, key=lambda stats: stats.commit_count, reverse=True)

    def _commit_frequency(self, commits: Iterable[CommitMetadata]) -> Dict[str, int]:
        frequency: Dict[str, int] = {}
        for commit in commits:
            day = utc_date_key(commit.timestamp)
            frequency[day] = frequency.get(day, 0) + 1
        return frequency

    def _file_change_patterns(self, commits: Iterable[CommitMetadata]) -> Dict[str, int]:
        churn: Counter = Counter()
        for commit in commits:
            churn.update(commit.files_changed)
        return dict(churn.most_common(self.top_files_limit))

    def _group_by_task(self, commits: Iterable[CommitMetadata]) -> Dict[str, List[CommitMetadata]]:
        groups: Dict[str, List[CommitMetadata]] = {}
        for commit in commits:
            for task_id in sorted(commit.task_references):
                groups.setdefault(task_id, []).append(commit)
        return groups


def analyze_repository(
    handle: RepositoryHandle,
    max_count: Optional[int] = None,
    since: Optional[DateFilter] = None,
    until: Optional[DateFilter] = None,
    author: Optional[str] = None,
    walker: Optional[CommitWalker] = None,
    aggregator: Optional[AnalyticsAggregator] = None,
) -> CommitAnalysis:
    """Walk a repository's recent history and aggregate it into a report."""
    walker = walker or CommitWalker()
    aggregator = aggregator or AnalyticsAggregator()
    commits = walker.walk(handle, max_count=max_count, since=since, until=until, author=author)
    return aggregator.aggregate(commits)
