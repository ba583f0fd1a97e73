"""Data models for Git commit information."""

from datetime import datetime
from typing import FrozenSet, Tuple

from pydantic import BaseModel, ConfigDict, Field


class CommitAuthor(BaseModel):
    """Name and email of a commit author."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Author name")
    email: str = Field(..., description="Author email")

    @property
    def key(self) -> str:
        """Identity key used for author statistics: ``name<email>``."""
        return f"{self.name}<{self.email}>"


class CommitMetadata(BaseModel):
    """Represents metadata for a single Git commit."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "hash": "abc123def456",
                "message": "Fix task 27.6 and refs #14",
                "author": {"name": "John Doe", "email": "john@example.com"},
                "timestamp": "2024-01-15T10:30:00+00:00",
                "files_changed": ["src/auth.py", "tests/test_auth.py"],
                "insertions": 12,
                "deletions": 3,
                "task_references": ["27.6", "14"],
            }
        },
    )

    hash: str = Field(..., description="Full commit SHA hash")
    message: str = Field(..., description="Full commit message")
    author: CommitAuthor = Field(..., description="Commit author")
    timestamp: datetime = Field(..., description="Author timestamp")
    files_changed: Tuple[str, ...] = Field(default=(), description="Paths touched by the commit")
    insertions: int = Field(0, ge=0, description="Number of lines added")
    deletions: int = Field(0, ge=0, description="Number of lines deleted")
    task_references: FrozenSet[str] = Field(
        default=frozenset(), description="Task identifiers referenced in the message"
    )

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def message_summary(self) -> str:
        lines = self.message.strip().split("\n")
        return lines[0] if lines else ""
