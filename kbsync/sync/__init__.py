"""Polling and synchronization components."""

from kbsync.sync.baseline_resolver import BaselineResolver
from kbsync.sync.changelog_generator import ChangelogGenerator
from kbsync.sync.interfaces import RemoteRevisionSource, WorkspaceSynchronizer
from kbsync.sync.models import PollingDecision, PollingVerdict, SyncMode, SyncResult
from kbsync.sync.polling_engine import PollingEngine
from kbsync.sync.sync_orchestrator import SyncOrchestrator

__all__ = [
    "BaselineResolver",
    "ChangelogGenerator",
    "PollingDecision",
    "PollingEngine",
    "PollingVerdict",
    "RemoteRevisionSource",
    "SyncMode",
    "SyncOrchestrator",
    "SyncResult",
    "WorkspaceSynchronizer",
]
