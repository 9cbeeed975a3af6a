"""Build history access."""

from kbsync.history.build_history import (
    BuildHistory,
    BuildRecord,
    BuildRef,
    FileSystemBuildHistory,
    walk_back,
)

__all__ = [
    "BuildHistory",
    "BuildRecord",
    "BuildRef",
    "FileSystemBuildHistory",
    "walk_back",
]
