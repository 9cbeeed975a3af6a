"""Polling: decide whether the remote KB moved past the baseline."""

import threading
from datetime import datetime, timezone

import structlog

from kbsync.exceptions import KbSyncError, RemoteQueryError
from kbsync.history.build_history import BuildHistory
from kbsync.models.config import KbCoordinates
from kbsync.models.revision import RevisionWatermark
from kbsync.sync.baseline_resolver import BaselineResolver
from kbsync.sync.cancellation import raise_if_cancelled
from kbsync.sync.interfaces import RemoteRevisionSource
from kbsync.sync.models import PollingDecision, PollingVerdict

log = structlog.stdlib.get_logger()


class PollingEngine:
    """Compares a baseline watermark with the latest remote revision.

    Polling needs no workspace and never writes any state, so it can run as
    often as the scheduler likes.
    """

    def __init__(
        self,
        remote_source: RemoteRevisionSource,
        baseline_resolver: BaselineResolver | None = None,
    ):
        """
        Initialize polling engine.

        Args:
            remote_source: Remote revision source to query
            baseline_resolver: Resolver used by compare_remote_revision()
        """
        self._remote_source: RemoteRevisionSource = remote_source
        self._baseline_resolver: BaselineResolver | None = baseline_resolver

    def poll(
        self,
        baseline: RevisionWatermark,
        coordinates: KbCoordinates,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PollingDecision:
        """
        Query the remote source and compare against the baseline.

        Args:
            baseline: Last known state
            coordinates: KB to query
            window_start: Start of the query window (defaults to the baseline date)
            window_end: End of the query window (defaults to now)
            cancel_event: Set by the caller to abandon the poll

        Returns:
            PollingDecision with SIGNIFICANT_CHANGE iff the remote revision is
            greater than the baseline revision

        Raises:
            RemoteQueryError: If the remote source fails
            SyncCancelledError: If cancel_event is set
        """
        if window_start is None:
            window_start = baseline.revision_date
        if window_end is None:
            window_end = datetime.now(timezone.utc)

        log.info(
            "polling_remote_revision",
            kb_name=coordinates.kb_name,
            baseline_revision=baseline.revision,
            window_start=window_start.isoformat(),
            window_end=window_end.isoformat(),
        )

        raise_if_cancelled(cancel_event, "poll")
        try:
            current = self._remote_source.latest_revision(coordinates, window_start, window_end)
        except KbSyncError:
            raise
        except Exception as e:
            log.error("remote_revision_query_failed", kb_name=coordinates.kb_name, error=str(e))
            raise RemoteQueryError(f"Failed to query latest revision: {e}") from e
        raise_if_cancelled(cancel_event, "poll")

        if current.revision > baseline.revision:
            verdict = PollingVerdict.SIGNIFICANT_CHANGE
        else:
            verdict = PollingVerdict.NO_CHANGE

        log.info(
            "polling_completed",
            kb_name=coordinates.kb_name,
            baseline_revision=baseline.revision,
            current_revision=current.revision,
            verdict=verdict.value,
        )

        return PollingDecision(baseline=baseline, current=current, verdict=verdict)

    def compare_remote_revision(
        self,
        history: BuildHistory,
        coordinates: KbCoordinates,
        baseline: RevisionWatermark | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PollingDecision:
        """
        Resolve the baseline from build history, then poll.

        Args:
            history: Build history of the job
            coordinates: KB to query
            baseline: Watermark already known to the caller, skips history walking
            cancel_event: Set by the caller to abandon the poll

        Returns:
            PollingDecision for the resolved baseline
        """
        if self._baseline_resolver is None:
            raise ValueError("baseline_resolver is required to resolve a baseline from history")

        resolved = self._baseline_resolver.resolve_latest(history, baseline)
        return self.poll(resolved, coordinates, cancel_event=cancel_event)
