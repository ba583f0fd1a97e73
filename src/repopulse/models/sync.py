"""Outcome of repository-mutating operations."""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SyncStatus(str, Enum):
    """Terminal states of a mutating operation."""

    SUCCESS = "success"
    NEEDS_UPSTREAM = "needs_upstream"
    NEEDS_PULL = "needs_pull"
    FAILED = "failed"


class SyncOutcome(BaseModel):
    """Tagged result of push, pull and the other state-changing operations.

    The four states are not a boolean: ``needs_upstream`` and ``needs_pull``
    are recoverable failures that each have their own follow-up operation.
    Truth-testing an outcome raises ``TypeError``; compare ``status`` instead.
    """

    model_config = ConfigDict(frozen=True)

    status: SyncStatus = Field(..., description="Terminal state")
    operation: str = Field(..., description="Operation that produced this outcome")
    reason: Optional[str] = Field(None, description="Diagnostic text for non-success states")
    output: Optional[str] = Field(None, description="Output reported by git")
    error_code: Optional[str] = Field(None, description="Machine-readable failure code")
    branch_used: Optional[str] = Field(None, description="Branch the operation acted on")
    commit_hash: Optional[str] = Field(None, description="Commit created by the operation")
    steps: Tuple["SyncOutcome", ...] = Field(
        default=(), description="Outcomes of the sub-operations of a multi-step recovery"
    )

    def __bool__(self) -> bool:
        raise TypeError("SyncOutcome has four states; compare .status instead of truth-testing")

    @property
    def succeeded(self) -> bool:
        return self.status is SyncStatus.SUCCESS

    @property
    def is_recoverable(self) -> bool:
        return self.status in (SyncStatus.NEEDS_UPSTREAM, SyncStatus.NEEDS_PULL)

    @classmethod
    def success(cls, operation: str, **kwargs) -> "SyncOutcome":
        return cls(status=SyncStatus.SUCCESS, operation=operation, **kwargs)

    @classmethod
    def needs_upstream(cls, operation: str, reason: str, **kwargs) -> "SyncOutcome":
        return cls(status=SyncStatus.NEEDS_UPSTREAM, operation=operation, reason=reason, **kwargs)

    @classmethod
    def needs_pull(cls, operation: str, reason: str, **kwargs) -> "SyncOutcome":
        return cls(status=SyncStatus.NEEDS_PULL, operation=operation, reason=reason, **kwargs)

    @classmethod
    def failed(cls, operation: str, reason: str, **kwargs) -> "SyncOutcome":
        return cls(status=SyncStatus.FAILED, operation=operation, reason=reason, **kwargs)


SyncOutcome.model_rebuild()
