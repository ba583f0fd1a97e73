"""Data models for aggregate commit history analysis."""

from datetime import datetime
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from repopulse.models.commit import CommitMetadata


class AuthorStats(BaseModel):
    """Per-author totals, keyed by ``name<email>``."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Author name")
    email: str = Field(..., description="Author email")
    commit_count: int = Field(0, description="Number of commits")
    lines_added: int = Field(0, description="Lines inserted across all commits")
    lines_deleted: int = Field(0, description="Lines deleted across all commits")
    first_commit: datetime = Field(..., description="Earliest commit timestamp")
    last_commit: datetime = Field(..., description="Latest commit timestamp")

    @property
    def key(self) -> str:
        return f"{self.name}<{self.email}>"


class DateRange(BaseModel):
    """Inclusive window spanned by the analysed commits."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: datetime = Field(..., alias="from", description="Earliest commit timestamp")
    to: datetime = Field(..., description="Latest commit timestamp")


class CodeVelocity(BaseModel):
    """Rates of commits and line changes over the analysed window."""

    model_config = ConfigDict(frozen=True)

    avg_commits_per_day: float = 0.0
    avg_lines_changed: float = 0.0
    total_lines_added: int = 0
    total_lines_deleted: int = 0


class CommitAnalysis(BaseModel):
    """Aggregate report over a sequence of commits.

    The report is read-only all the way down: sequences are tuples and the
    keyed breakdowns are exposed as read-only mapping views.
    """

    model_config = ConfigDict(frozen=True)

    total_commits: int = Field(0, description="Number of commits analysed")
    date_range: DateRange = Field(..., description="Window covered by the commits")
    authors: Tuple[AuthorStats, ...] = Field(
        default=(), description="Authors sorted by descending commit count"
    )
    commit_frequency: Mapping[str, int] = Field(
        default_factory=dict,
        validate_default=True,
        description="Commit count per UTC calendar date (YYYY-MM-DD)",
    )
    file_change_patterns: Mapping[str, int] = Field(
        default_factory=dict,
        validate_default=True,
        description="Most frequently changed paths, descending",
    )
    task_references: Mapping[str, Tuple[CommitMetadata, ...]] = Field(
        default_factory=dict,
        validate_default=True,
        description="Commits grouped by referenced task id",
    )
    code_velocity: CodeVelocity = Field(default_factory=CodeVelocity)

    @field_validator("commit_frequency", "file_change_patterns", "task_references", mode="after")
    @classmethod
    def _read_only(cls, value: Mapping) -> Mapping:
        return MappingProxyType(dict(value))

    @field_serializer("commit_frequency", "file_change_patterns", "task_references")
    def _serialize_mapping(self, value: Mapping) -> Dict:
        return dict(value)
