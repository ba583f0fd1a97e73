"""Classification of failed push attempts.

Structured signals are checked first: the per-ref status lines that
``git push --porcelain`` prints on stdout. Diagnostic text is matched only
when no rejected ref line explains the failure.
"""

from dataclasses import dataclass
from typing import List, Tuple

from repopulse.gitcmd import GIT_NOT_FOUND_STATUS, GitCommandResult
from repopulse.models import SyncOutcome, SyncStatus

# Porcelain summaries of refs the remote has work for that we do not
REMOTE_AHEAD_SUMMARIES = ("fetch first", "non-fast-forward")


@dataclass(frozen=True)
class FailureRule:
    """Maps diagnostic text to a sync status.

    A rule matches when every ``all_of`` substring and at least one
    ``any_of`` substring occur in the lower-cased diagnostic.
    """

    status: SyncStatus
    error_code: str
    any_of: Tuple[str, ...]
    all_of: Tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        return all(token in text for token in self.all_of) and any(token in text for token in self.any_of)


PUSH_FAILURE_RULES: Tuple[FailureRule, ...] = (
    FailureRule(
        status=SyncStatus.NEEDS_UPSTREAM,
        error_code="NO_UPSTREAM",
        any_of=("no upstream branch", "has no upstream", "no upstream configured"),
    ),
    FailureRule(
        status=SyncStatus.NEEDS_PULL,
        error_code="REMOTE_AHEAD",
        all_of=("updates were rejected",),
        any_of=("fetch first", "non-fast-forward", "behind its remote counterpart", "remote contains work"),
    ),
    FailureRule(
        status=SyncStatus.NEEDS_PULL,
        error_code="REMOTE_AHEAD",
        all_of=("[rejected]",),
        any_of=REMOTE_AHEAD_SUMMARIES,
    ),
)


def rejected_ref_summaries(stdout: str) -> List[str]:
    """Return the summaries of refs flagged ``!`` in ``push --porcelain`` output.

    A porcelain ref line reads ``<flag>\\t<from>:<to>\\t<summary>``.
    """
    summaries = []
    for line in stdout.splitlines():
        parts = line.split("\t")
        if len(parts) >= 3 and parts[0] == "!":
            summaries.append(parts[2])
    return summaries


def classify_push_failure(result: GitCommandResult, operation: str = "push") -> SyncOutcome:
    """Turn a failed push into NeedsUpstream, NeedsPull or Failed.

    Args:
        result: The failed push invocation
        operation: Operation name recorded on the outcome

    Returns:
        SyncOutcome carrying the git diagnostic as its reason
    """
    reason = result.diagnostic

    for summary in rejected_ref_summaries(result.stdout):
        if any(token in summary for token in REMOTE_AHEAD_SUMMARIES):
            return SyncOutcome.needs_pull(operation, reason, error_code="REMOTE_AHEAD")

    text = reason.lower()
    for rule in PUSH_FAILURE_RULES:
        if rule.matches(text):
            return SyncOutcome(
                status=rule.status, operation=operation, reason=reason, error_code=rule.error_code
            )

    return SyncOutcome.failed(operation, reason, error_code=failure_code(result))


def failure_code(result: GitCommandResult) -> str:
    """Error code for an unclassified git failure."""
    if result.status == GIT_NOT_FOUND_STATUS:
        return "GIT_NOT_FOUND"
    if "timeout:" in result.stderr.lower():
        return "TIMEOUT"
    return "GIT_ERROR"
