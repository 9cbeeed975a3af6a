"""Changelog generation for a checkout/update cycle."""

import json
import os
import tempfile
import threading
from pathlib import Path

import structlog
from pydantic import ValidationError

from kbsync.exceptions import SyncCancelledError
from kbsync.models.config import KbCoordinates
from kbsync.models.revision import Changelog, RevisionWatermark
from kbsync.sync.cancellation import raise_if_cancelled
from kbsync.sync.interfaces import RemoteRevisionSource

log = structlog.stdlib.get_logger()


class ChangelogGenerator:
    """Builds the changelog between a baseline and the current revision.

    A changelog is always produced. When the window is empty, the date check
    fails or the remote enumeration errors out, the result is the empty
    changelog rather than a missing artifact. Cancellation is the exception
    and always propagates.
    """

    def __init__(self, remote_source: RemoteRevisionSource):
        self._remote_source: RemoteRevisionSource = remote_source

    def generate(
        self,
        baseline: RevisionWatermark,
        current: RevisionWatermark,
        coordinates: KbCoordinates,
        cancel_event: threading.Event | None = None,
    ) -> Changelog:
        """
        Produce the changelog for ``(baseline.revision_date, current.revision_date]``.

        Args:
            baseline: Previously known state
            current: State right after synchronization
            coordinates: KB to query
            cancel_event: Set by the caller to abandon enumeration

        Returns:
            Changelog with entries sorted by revision, possibly empty

        Raises:
            SyncCancelledError: If cancel_event is set or the enumeration is interrupted
        """
        if not current.revision_date > baseline.revision_date:
            log.info(
                "changelog_window_empty",
                baseline_date=baseline.revision_date.isoformat(),
                current_date=current.revision_date.isoformat(),
            )
            return Changelog.empty()

        raise_if_cancelled(cancel_event, "changelog enumeration")
        try:
            entries = list(
                self._remote_source.changes_between(
                    coordinates, baseline.revision_date, current.revision_date
                )
            )
        except SyncCancelledError:
            raise
        except InterruptedError as e:
            log.warning("changelog_enumeration_interrupted", kb_name=coordinates.kb_name)
            raise SyncCancelledError(
                "Interrupted during changelog enumeration", {"stage": "changelog enumeration"}
            ) from e
        except Exception as e:
            raise_if_cancelled(cancel_event, "changelog enumeration")
            log.warning(
                "changelog_generation_failed",
                kb_name=coordinates.kb_name,
                error=str(e),
            )
            return Changelog.empty()

        raise_if_cancelled(cancel_event, "changelog enumeration")

        if not entries:
            log.info("no_changes_reported", kb_name=coordinates.kb_name)
            return Changelog.empty()

        entries.sort(key=lambda entry: (entry.revision, entry.revision_date))
        changelog = Changelog(
            from_date=baseline.revision_date,
            to_date=current.revision_date,
            entries=entries,
        )

        log.info(
            "changelog_generated",
            kb_name=coordinates.kb_name,
            entry_count=len(entries),
            first_revision=entries[0].revision,
            last_revision=entries[-1].revision,
        )
        return changelog

    @staticmethod
    def write(changelog: Changelog, path: str | Path) -> Path:
        """Write a changelog document, replacing any existing file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(changelog.to_json())
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        log.info("changelog_written", path=str(path), entry_count=len(changelog.entries))
        return path

    @staticmethod
    def read(path: str | Path) -> Changelog:
        """
        Read a changelog document.

        A missing or blank file reads as the empty changelog.

        Raises:
            ValueError: If the file holds something other than a changelog
        """
        path = Path(path)
        if not path.is_file():
            return Changelog.empty()

        text = path.read_text(encoding="utf-8")
        if not text.strip():
            return Changelog.empty()

        try:
            return Changelog.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ValueError(f"Invalid changelog file {path}: {e}") from e
