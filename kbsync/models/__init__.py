"""Data models for the KB revision sync engine."""

from kbsync.models.config import (
    AppConfig,
    KbCoordinates,
    KbDatabaseOptions,
    LoggingConfig,
    StoreConfig,
    WorkspaceConfig,
)
from kbsync.models.revision import (
    MIN_WATERMARK,
    ChangedObject,
    ChangeEntry,
    Changelog,
    RevisionInfo,
    RevisionWatermark,
)

__all__ = [
    "MIN_WATERMARK",
    "RevisionWatermark",
    "RevisionInfo",
    "ChangeEntry",
    "ChangedObject",
    "Changelog",
    "AppConfig",
    "KbCoordinates",
    "KbDatabaseOptions",
    "LoggingConfig",
    "StoreConfig",
    "WorkspaceConfig",
]
