"""Baseline resolution over a build history with gaps."""

from collections.abc import Iterable

import structlog

from kbsync.exceptions import RecordNotFoundError
from kbsync.history.build_history import BuildHistory, BuildRef, walk_back
from kbsync.models.revision import MIN_WATERMARK, RevisionWatermark
from kbsync.storage.watermark_store import WatermarkStore

log = structlog.stdlib.get_logger()


class BaselineResolver:
    """Finds the watermark to treat as the last known state.

    Builds that never persisted a record (aborted, failed before the
    synchronization ran, corrupt record) are skipped and the walk moves on to
    the previous build. When nothing is found the result is MIN_WATERMARK,
    so the whole remote history counts as new.
    """

    def __init__(self, watermark_store: WatermarkStore):
        self._watermark_store: WatermarkStore = watermark_store

    def resolve(
        self,
        builds: Iterable[BuildRef],
        explicit: RevisionWatermark | None = None,
    ) -> RevisionWatermark:
        """
        Resolve a baseline from builds ordered newest first.

        Args:
            builds: Candidate builds, newest first; consumed lazily
            explicit: Watermark already known for the starting build

        Returns:
            The explicit watermark, the first loadable record, or MIN_WATERMARK
        """
        if explicit is not None:
            log.debug("baseline_supplied_explicitly", revision=explicit.revision)
            return explicit

        skipped = 0
        for build in builds:
            try:
                watermark = self._watermark_store.load(build)
            except RecordNotFoundError as e:
                skipped += 1
                log.debug(
                    "build_without_revision_record_skipped",
                    build_number=build.number,
                    corrupt=e.corrupt,
                )
                continue

            log.info(
                "baseline_resolved",
                build_number=build.number,
                revision=watermark.revision,
                skipped_builds=skipped,
            )
            return watermark

        log.info("no_baseline_found", skipped_builds=skipped)
        return MIN_WATERMARK

    def resolve_from_build(
        self,
        history: BuildHistory,
        build: BuildRef | None,
        explicit: RevisionWatermark | None = None,
    ) -> RevisionWatermark:
        """Resolve the revision state of ``build``, falling back to earlier builds."""
        if explicit is not None:
            return self.resolve((), explicit)
        return self.resolve(walk_back(history, build))

    def resolve_before_build(
        self,
        history: BuildHistory,
        build: BuildRef,
        explicit: RevisionWatermark | None = None,
    ) -> RevisionWatermark:
        """Resolve the baseline for ``build`` itself, starting at the build before it."""
        if explicit is not None:
            return self.resolve((), explicit)
        return self.resolve(walk_back(history, history.previous_build(build)))

    def resolve_latest(
        self,
        history: BuildHistory,
        explicit: RevisionWatermark | None = None,
    ) -> RevisionWatermark:
        """Resolve the baseline for polling: the newest build with a record."""
        if explicit is not None:
            return self.resolve((), explicit)
        return self.resolve(walk_back(history, history.last_build()))
