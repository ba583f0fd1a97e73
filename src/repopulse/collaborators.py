"""Interfaces to the task-tracking collaborators.

Correlators and trackers are supplied by the caller. ``RegexTaskCorrelator``
is a keyword-scoring correlator that works without any model or service.
``CommandTaskTracker`` runs the task CLI as an opaque process and does not
interpret its output.
"""

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import structlog
from pydantic import BaseModel, Field

from repopulse.extraction.task_refs import TaskReferenceExtractor
from repopulse.models import CommitMetadata, Settings

logger = structlog.get_logger(__name__)


class CommitTaskCorrelation(BaseModel):
    """Suggested link between a commit and a tracked task."""

    commit_hash: str = Field(..., description="Correlated commit")
    task_id: Optional[str] = Field(None, description="Task the commit appears to work on")
    confidence: float = Field(0.0, ge=0.0, le=1.0, description="Confidence of the link (0-1)")
    progress_estimate: str = Field("unknown", description="started, in-progress, completed or unknown")
    reasoning: str = Field("", description="Why the correlator made this link")
    suggested_action: str = Field("none", description="update-status, add-progress, create-task or none")


class TaskCommandResult(BaseModel):
    """Result of one task CLI invocation."""

    success: bool
    task_id: str
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    error: Optional[str] = None


class BaseTaskCorrelator(ABC):
    """Abstract base class for commit-to-task correlators."""

    @abstractmethod
    def correlate(self, commit: CommitMetadata) -> Optional[CommitTaskCorrelation]:
        """Correlate one commit with a task.

        Args:
            commit: Commit to correlate

        Returns:
            The correlation, or None when the commit relates to no task
        """
        pass


class RegexTaskCorrelator(BaseTaskCorrelator):
    """Correlates commits with the first task their message references.

    Confidence starts at 0.5 and grows with keywords that signal task work,
    with extra references, with subtask ids and with touched files.
    """

    COMPLETED_WORDS: Tuple[str, ...] = ("fix", "complete", "finish", "done", "resolve", "close", "final")
    STARTED_WORDS: Tuple[str, ...] = ("start", "begin", "initial", "setup", "create", "add", "implement")
    IN_PROGRESS_WORDS: Tuple[str, ...] = ("update", "modify", "change", "improve", "refactor", "enhance", "work")

    def __init__(self, extractor: Optional[TaskReferenceExtractor] = None, update_threshold: float = 0.7) -> None:
        """Initialize the correlator.

        Args:
            extractor: Task reference extractor
            update_threshold: Confidence above which a completed task gets ``update-status``
        """
        self.extractor = extractor or TaskReferenceExtractor()
        self.update_threshold = update_threshold

    def correlate(self, commit: CommitMetadata) -> Optional[CommitTaskCorrelation]:
        references = self.extractor.in_order(commit.message)
        if not references:
            return CommitTaskCorrelation(
                commit_hash=commit.hash,
                reasoning="No task references found in commit message",
            )

        task_id = references[0]
        confidence = self.confidence(commit, task_id, len(references))
        progress = self.estimate_progress(commit.message)
        return CommitTaskCorrelation(
            commit_hash=commit.hash,
            task_id=task_id,
            confidence=confidence,
            progress_estimate=progress,
            reasoning=f'Found task reference "{task_id}" in commit message',
            suggested_action=self.suggest_action(confidence, progress),
        )

    def confidence(self, commit: CommitMetadata, task_id: str, reference_count: int) -> float:
        message = commit.message.lower()
        score = 0.5
        if "task" in message:
            score += 0.2
        if "fix" in message:
            score += 0.1
        if "complete" in message:
            score += 0.2
        if reference_count > 1:
            score += 0.1
        if "." in task_id:
            score += 0.1
        if commit.files_changed:
            score += 0.05
        return min(round(score, 2), 1.0)

    def estimate_progress(self, message: str) -> str:
        lowered = message.lower()
        if any(word in lowered for word in self.COMPLETED_WORDS):
            return "completed"
        if any(word in lowered for word in self.STARTED_WORDS):
            return "started"
        if any(word in lowered for word in self.IN_PROGRESS_WORDS):
            return "in-progress"
        return "unknown"

    def suggest_action(self, confidence: float, progress: str) -> str:
        if confidence < 0.5:
            return "none"
        if progress == "completed":
            return "update-status" if confidence > self.update_threshold else "add-progress"
        if progress in ("started", "in-progress"):
            return "add-progress"
        return "none"


class BaseTaskTracker(ABC):
    """Abstract base class for task status updaters."""

    @abstractmethod
    def update_status(self, task_id: str, status: str) -> TaskCommandResult:
        """Set the status of a task.

        Args:
            task_id: Task identifier (e.g. ``27.6``)
            status: New status

        Returns:
            TaskCommandResult
        """
        pass


class CommandTaskTracker(BaseTaskTracker):
    """Updates task status by running the task-tracking CLI."""

    def __init__(self, project_path: Path, settings: Optional[Settings] = None) -> None:
        """Initialize the tracker.

        Args:
            project_path: Directory the CLI runs in
            settings: Engine settings (CLI executable and timeout)
        """
        self.project_path = Path(project_path)
        self.settings = settings or Settings()

    def update_status(self, task_id: str, status: str) -> TaskCommandResult:
        command = [self.settings.task_cli_command, "set-status", f"--id={task_id}", f"--status={status}"]
        try:
            completed = subprocess.run(
                command,
                cwd=self.project_path,
                capture_output=True,
                text=True,
                timeout=self.settings.task_cli_timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("tasks.cli_failed", task_id=task_id, error=str(e))
            return TaskCommandResult(success=False, task_id=task_id, error=str(e))

        if completed.returncode != 0:
            logger.warning("tasks.cli_failed", task_id=task_id, returncode=completed.returncode)
            return TaskCommandResult(
                success=False,
                task_id=task_id,
                stdout=completed.stdout,
                stderr=completed.stderr,
                error=f"{command[0]} exited with status {completed.returncode}",
            )
        logger.info("tasks.status_updated", task_id=task_id, status=status)
        return TaskCommandResult(success=True, task_id=task_id, stdout=completed.stdout, stderr=completed.stderr)


def apply_correlations(
    commits: Iterable[CommitMetadata],
    correlator: BaseTaskCorrelator,
    tracker: BaseTaskTracker,
    threshold: float = 0.5,
    status: str = "done",
) -> List[TaskCommandResult]:
    """Forward confident ``update-status`` suggestions to the task tracker.

    Args:
        commits: Commits to correlate
        correlator: Correlation collaborator
        tracker: Task status collaborator
        threshold: Minimum confidence for a status update
        status: Status applied to correlated tasks

    Returns:
        One TaskCommandResult per update issued
    """
    results = []
    updated = set()
    for commit in commits:
        correlation = correlator.correlate(commit)
        if correlation is None or not correlation.task_id:
            continue
        if correlation.confidence < threshold or correlation.suggested_action != "update-status":
            continue
        if correlation.task_id in updated:
            continue
        updated.add(correlation.task_id)
        results.append(tracker.update_status(correlation.task_id, status))
    return results
