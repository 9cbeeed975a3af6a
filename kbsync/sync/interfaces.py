"""Contracts for the collaborators the sync core consults.

Concrete implementations (server protocol client, checkout tool runner) are
provided by the embedding application.
"""

import fnmatch
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import structlog

from kbsync.models.config import KbCoordinates, KbDatabaseOptions
from kbsync.models.revision import ChangeEntry, RevisionInfo

log = structlog.stdlib.get_logger()


class RemoteRevisionSource(ABC):
    """Answers revision queries against the remote KB server."""

    @abstractmethod
    def latest_revision(
        self,
        coordinates: KbCoordinates,
        window_start: datetime | None,
        window_end: datetime,
    ) -> RevisionInfo:
        """
        Return the latest revision visible in ``[window_start, window_end]``.

        Args:
            coordinates: KB location and resolved identity
            window_start: Lower bound, or None for "from the beginning"
            window_end: Upper bound

        Returns:
            RevisionInfo for the newest revision in the window

        Raises:
            Exception: Any failure reaching the server; the core treats it as fatal
        """

    @abstractmethod
    def changes_between(
        self,
        coordinates: KbCoordinates,
        from_date: datetime,
        to_date: datetime,
    ) -> Sequence[ChangeEntry]:
        """Enumerate revisions committed in ``(from_date, to_date]``."""


class WorkspaceSynchronizer(ABC):
    """Checks out or updates the local working copy of a KB."""

    def __init__(self, marker_pattern: str = "*.gxw"):
        """
        Args:
            marker_pattern: Glob identifying an initialized KB directory
        """
        self._marker_pattern: str = marker_pattern

    def workspace_already_initialized(self, kb_path: Path) -> bool:
        """
        Check whether ``kb_path`` already holds a KB.

        The marker glob is matched case-insensitively against the entries of
        the directory. Any error while listing counts as "not initialized".
        """
        kb_path = Path(kb_path)
        if not kb_path.is_dir():
            return False

        pattern = self._marker_pattern.lower()
        try:
            for entry in kb_path.iterdir():
                if entry.is_file() and fnmatch.fnmatch(entry.name.lower(), pattern):
                    return True
        except OSError as e:
            log.error("workspace_inspection_failed", kb_path=str(kb_path), error=str(e))
            return False

        return False

    @abstractmethod
    def checkout(
        self,
        kb_path: Path,
        coordinates: KbCoordinates,
        db_options: KbDatabaseOptions,
    ) -> bool:
        """Create a fresh local KB at ``kb_path``. Returns False on failure."""

    @abstractmethod
    def update(self, kb_path: Path, coordinates: KbCoordinates) -> bool:
        """Bring the existing local KB at ``kb_path`` up to date. Returns False on failure."""
