"""File-backed storage of one revision record per build."""

import json
import os
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from kbsync.history.build_history import BuildRef
from kbsync.models.revision import RevisionWatermark
from kbsync.exceptions import RecordNotFoundError

log = structlog.stdlib.get_logger()


class WatermarkStore:
    """Reads and writes revision records inside each build's own directory."""

    def __init__(
        self,
        file_name: str = "revision.json",
        legacy_file_names: tuple[str, ...] | list[str] = ("revision.txt",),
    ):
        """
        Initialize watermark store.

        Args:
            file_name: Record file name written into each build directory
            legacy_file_names: Older record names, read only when file_name is absent
        """
        self._file_name: str = file_name
        self._legacy_file_names: tuple[str, ...] = tuple(legacy_file_names)

    def record_path(self, build: BuildRef) -> Path:
        """Path of the record written for a build."""
        return Path(build.root_dir) / self._file_name

    def _existing_record_path(self, build: BuildRef) -> Path | None:
        for name in (self._file_name, *self._legacy_file_names):
            path = Path(build.root_dir) / name
            if path.is_file():
                return path
        return None

    def save(self, build: BuildRef, watermark: RevisionWatermark) -> Path:
        """
        Persist a revision record for a build, replacing any previous one.

        The document is written to a temporary sibling and renamed into place.

        Args:
            build: Build owning the record
            watermark: Watermark (and any extra revision metadata) to store

        Returns:
            Path of the written record

        Raises:
            OSError: If the record cannot be written
        """
        path = self.record_path(build)
        path.parent.mkdir(parents=True, exist_ok=True)
        document = json.dumps(watermark.to_record(), indent=2, sort_keys=True)

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
            os.replace(tmp_name, path)
        except OSError as e:
            log.error(
                "failed_to_save_revision_record",
                build_number=build.number,
                path=str(path),
                error=str(e),
            )
            Path(tmp_name).unlink(missing_ok=True)
            raise

        log.info(
            "revision_record_saved",
            build_number=build.number,
            revision=watermark.revision,
            revision_date=watermark.revision_date.isoformat(),
        )
        return path

    def load(self, build: BuildRef) -> RevisionWatermark:
        """
        Load the revision record of a build.

        Unknown fields in the document are ignored.

        Args:
            build: Build whose record is requested

        Returns:
            RevisionWatermark stored for the build

        Raises:
            RecordNotFoundError: If there is no record or it cannot be decoded
        """
        path = self._existing_record_path(build)
        if path is None:
            log.debug("no_revision_record", build_number=build.number)
            raise RecordNotFoundError(
                f"No revision record for build #{build.number}", build_number=build.number
            )

        try:
            document = json.loads(path.read_text(encoding="utf-8"))
            watermark = RevisionWatermark.model_validate(document)
        except (OSError, OverflowError, ValueError, ValidationError) as e:
            log.warning(
                "corrupt_revision_record",
                build_number=build.number,
                path=str(path),
                error=str(e),
            )
            raise RecordNotFoundError(
                f"Unreadable revision record for build #{build.number}: {e}",
                build_number=build.number,
                corrupt=True,
            ) from e

        log.debug(
            "revision_record_loaded",
            build_number=build.number,
            revision=watermark.revision,
        )
        return watermark

    def find(self, build: BuildRef) -> RevisionWatermark | None:
        """Like load(), but returns None instead of raising."""
        try:
            return self.load(build)
        except RecordNotFoundError:
            return None
