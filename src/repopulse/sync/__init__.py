"""Repository synchronization and other state-changing operations."""

from repopulse.sync.branches import BranchManager
from repopulse.sync.classify import PUSH_FAILURE_RULES, classify_push_failure
from repopulse.sync.coordinator import SyncCoordinator

__all__ = ["BranchManager", "PUSH_FAILURE_RULES", "SyncCoordinator", "classify_push_failure"]
