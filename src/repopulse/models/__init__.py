"""Data models for repository state and history analytics."""

from repopulse.models.analysis import AuthorStats, CodeVelocity, CommitAnalysis, DateRange
from repopulse.models.commit import CommitAuthor, CommitMetadata
from repopulse.models.config import RepositoryHandle, Settings
from repopulse.models.status import (
    BranchInfo,
    ChangeKind,
    FileChangeEntry,
    RemoteInfo,
    StatusSnapshot,
)
from repopulse.models.sync import SyncOutcome, SyncStatus

__all__ = [
    "AuthorStats",
    "BranchInfo",
    "ChangeKind",
    "CodeVelocity",
    "CommitAnalysis",
    "CommitAuthor",
    "CommitMetadata",
    "DateRange",
    "FileChangeEntry",
    "RemoteInfo",
    "RepositoryHandle",
    "Settings",
    "StatusSnapshot",
    "SyncOutcome",
    "SyncStatus",
]
