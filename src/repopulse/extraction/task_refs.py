"""Task reference extraction from commit messages."""

import re
from typing import Dict, FrozenSet, Tuple

# A task id is a number with an optional ".subtask" suffix. The trailing
# guard stops "27.6" from also matching as "27" or "27.6.1" as "27.6".
_TASK_ID = r"(\d+(?:\.\d+)?)(?!\.?\d)"


class TaskReferenceExtractor:
    """Extracts referenced task identifiers from commit messages."""

    # A keyword and its id must be on the same line
    PATTERNS: Tuple["re.Pattern[str]", ...] = (
        # fixes #12, close: 4, resolved 3.2, refs #14, references 9
        re.compile(
            r"\b(?:tasks?|fix(?:es|ed)?|close[sd]?|resolve[sd]?|refs?|references)"
            r"[ \t]*[#:]?[ \t]*" + _TASK_ID,
            re.IGNORECASE,
        ),
        # #14, #27.6
        re.compile(r"#" + _TASK_ID),
        # 27.6 (subtask shorthand)
        re.compile(r"(?<![\d.#])(\d+\.\d+)(?!\.?\d)"),
        # task 27, tasks 3.1
        re.compile(r"\btasks?[ \t]+" + _TASK_ID, re.IGNORECASE),
    )

    def in_order(self, message: str) -> Tuple[str, ...]:
        """Return referenced task ids ordered by where they first appear."""
        first_seen: Dict[str, int] = {}
        for pattern in self.PATTERNS:
            for match in pattern.finditer(message):
                task_id = match.group(1)
                position = match.start(1)
                if position < first_seen.get(task_id, len(message)):
                    first_seen[task_id] = position
        return tuple(sorted(first_seen, key=lambda task_id: (first_seen[task_id], task_id)))

    def extract(self, message: str) -> FrozenSet[str]:
        """Extract every task id referenced in a commit message.

        Args:
            message: Commit message

        Returns:
            Deduplicated set of task ids (e.g. ``{"27.6", "14"}``)
        """
        references = set()
        for pattern in self.PATTERNS:
            for match in pattern.finditer(message):
                references.add(match.group(1))
        return frozenset(references)


_default_extractor = TaskReferenceExtractor()


def extract_task_references(message: str) -> FrozenSet[str]:
    """Extract task ids using the default pattern set."""
    return _default_extractor.extract(message)
