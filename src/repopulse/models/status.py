"""Data models for working tree, branch and remote state."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class StatusSnapshot(BaseModel):
    """Point-in-time reconciled status of a repository.

    ``is_dirty`` is derived from the change count and the conflict flag and
    cannot be set independently.
    """

    model_config = ConfigDict(frozen=True)

    is_repo: bool = Field(False, description="Whether the path is a Git working tree")
    has_remote: bool = Field(False, description="Whether any remote is configured")
    current_branch: Optional[str] = Field(None, description="Checked out branch, None when detached")
    uncommitted_change_count: int = Field(0, ge=0, description="Changed or untracked paths")
    unpushed_commit_count: int = Field(0, ge=0, description="Commits ahead of the upstream branch")
    has_conflicts: bool = Field(False, description="Whether any path is unmerged")
    last_commit_hash: Optional[str] = Field(None, description="Hash of HEAD")
    last_commit_message: Optional[str] = Field(None, description="Subject line of HEAD")

    @computed_field  # type: ignore[misc]
    @property
    def is_dirty(self) -> bool:
        return self.uncommitted_change_count > 0 or self.has_conflicts

    @model_validator(mode="after")
    def _zeroed_when_not_a_repo(self) -> "StatusSnapshot":
        if self.is_repo:
            return self
        populated = (
            self.has_remote
            or self.current_branch is not None
            or self.uncommitted_change_count
            or self.unpushed_commit_count
            or self.has_conflicts
            or self.last_commit_hash is not None
            or self.last_commit_message is not None
        )
        if populated:
            raise ValueError("a snapshot of a non-repository must carry only zero values")
        return self

    @classmethod
    def not_a_repository(cls) -> "StatusSnapshot":
        return cls(is_repo=False)


class ChangeKind(str, Enum):
    """Kind of change reported for a path in the working tree."""

    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    UNTRACKED = "untracked"
    RENAMED = "renamed"
    COPIED = "copied"


class FileChangeEntry(BaseModel):
    """A changed path, either in the index (staged) or in the working tree."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Path relative to the repository root")
    change_kind: ChangeKind = Field(..., description="Kind of change")
    staged: bool = Field(False, description="Whether the change is in the index")
    original_path: Optional[str] = Field(None, description="Source path for renames and copies")


class BranchInfo(BaseModel):
    """A local or remote-tracking branch."""

    model_config = ConfigDict(frozen=True)

    name: str
    current: bool = False
    commit: str = ""
    tracking: Optional[str] = None
    ahead: int = 0
    behind: int = 0
    is_remote: bool = False


class RemoteInfo(BaseModel):
    """A configured remote with its fetch and push URLs."""

    model_config = ConfigDict(frozen=True)

    name: str
    fetch_url: Optional[str] = None
    push_url: Optional[str] = None
