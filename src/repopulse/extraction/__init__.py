"""Commit history extraction."""

from repopulse.extraction.task_refs import TaskReferenceExtractor, extract_task_references
from repopulse.extraction.walker import CommitWalker, parse_numstat

__all__ = ["CommitWalker", "TaskReferenceExtractor", "extract_task_references", "parse_numstat"]
