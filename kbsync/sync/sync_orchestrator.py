"""Synchronization orchestrator for one checkout/update cycle."""

import threading
from datetime import datetime, timezone
from pathlib import Path

import structlog

from kbsync.exceptions import KbSyncError, RemoteQueryError, SynchronizationError
from kbsync.history.build_history import BuildHistory, BuildRef
from kbsync.models.config import KbCoordinates, KbDatabaseOptions
from kbsync.models.revision import RevisionWatermark
from kbsync.storage.watermark_store import WatermarkStore
from kbsync.sync.baseline_resolver import BaselineResolver
from kbsync.sync.cancellation import raise_if_cancelled
from kbsync.sync.changelog_generator import ChangelogGenerator
from kbsync.sync.interfaces import RemoteRevisionSource, WorkspaceSynchronizer
from kbsync.sync.models import SyncMode, SyncResult
from kbsync.utils.logging_config import build_context

log = structlog.stdlib.get_logger()


class SyncOrchestrator:
    """Drives synchronize -> query watermark -> persist -> changelog for a build."""

    def __init__(
        self,
        remote_source: RemoteRevisionSource,
        synchronizer: WorkspaceSynchronizer,
        watermark_store: WatermarkStore,
        history: BuildHistory,
        baseline_resolver: BaselineResolver | None = None,
        changelog_generator: ChangelogGenerator | None = None,
    ):
        """
        Initialize sync orchestrator.

        Args:
            remote_source: Remote revision source
            synchronizer: Workspace checkout/update capability
            watermark_store: Store for per-build revision records
            history: Build history of the job
            baseline_resolver: Optional resolver (built from watermark_store if None)
            changelog_generator: Optional generator (built from remote_source if None)
        """
        self._remote_source: RemoteRevisionSource = remote_source
        self._synchronizer: WorkspaceSynchronizer = synchronizer
        self._watermark_store: WatermarkStore = watermark_store
        self._history: BuildHistory = history
        self._baseline_resolver: BaselineResolver = baseline_resolver or BaselineResolver(
            watermark_store
        )
        self._changelog_generator: ChangelogGenerator = changelog_generator or ChangelogGenerator(
            remote_source
        )

        log.info("sync_orchestrator_initialized")

    def select_mode(self, kb_path: Path) -> SyncMode:
        """Update when the workspace already holds the KB, checkout otherwise."""
        if self._synchronizer.workspace_already_initialized(kb_path):
            return SyncMode.UPDATE
        return SyncMode.CHECKOUT

    def synchronize(
        self,
        build: BuildRef,
        workspace: str | Path,
        coordinates: KbCoordinates,
        db_options: KbDatabaseOptions | None = None,
        changelog_file: str | Path | None = None,
        baseline: RevisionWatermark | None = None,
        cancel_event: threading.Event | None = None,
    ) -> SyncResult:
        """
        Check out or update the KB in ``workspace`` and record what changed.

        This method:
        1. Chooses checkout or update from the workspace contents
        2. Runs the synchronizer
        3. Queries the revision as of the moment the synchronizer started
        4. Persists that revision for ``build``
        5. Generates the changelog against the previous builds' baseline

        Nothing is persisted unless steps 2 and 3 both succeed.

        Args:
            build: Build being run; owns the persisted record
            workspace: Local workspace root; the KB lives in a sub-directory named after it
            coordinates: KB location and resolved identity
            db_options: Local database options used on checkout
            changelog_file: Where to write the changelog, if anywhere
            baseline: Changelog baseline already known to the caller
            cancel_event: Set by the caller to abandon the cycle

        Returns:
            SyncResult with the persisted watermark and the changelog

        Raises:
            SynchronizationError: If checkout or update fails
            RemoteQueryError: If the current revision cannot be queried
            SyncCancelledError: If cancel_event is set
        """
        db_options = db_options or KbDatabaseOptions()
        kb_path = Path(workspace) / coordinates.kb_name

        with build_context(build_number=build.number, kb_name=coordinates.kb_name):
            raise_if_cancelled(cancel_event, "workspace inspection")
            mode = self.select_mode(kb_path)

            log.info(
                "synchronization_started",
                mode=mode.value,
                kb_path=str(kb_path),
                server_url=str(coordinates.server_url),
                kb_version=coordinates.kb_version,
            )

            # The synchronizer does not report the revision it reached, so the
            # revision as of the start time stands in for it.
            sync_start = datetime.now(timezone.utc)
            self._run_synchronizer(mode, kb_path, coordinates, db_options)
            raise_if_cancelled(cancel_event, mode.value)

            current = self._query_current_revision(coordinates, sync_start)
            raise_if_cancelled(cancel_event, "revision query")

            self._watermark_store.save(build, current)

            changelog_baseline = self._baseline_resolver.resolve_before_build(
                self._history, build, baseline
            )
            changelog = self._changelog_generator.generate(
                changelog_baseline, current, coordinates, cancel_event
            )
            raise_if_cancelled(cancel_event, "changelog generation")

            written_to: Path | None = None
            if changelog_file is not None:
                written_to = self._changelog_generator.write(changelog, changelog_file)

            log.info(
                "synchronization_completed",
                mode=mode.value,
                baseline_revision=changelog_baseline.revision,
                current_revision=current.revision,
                changelog_entries=len(changelog.entries),
            )

            return SyncResult(
                mode=mode,
                baseline=changelog_baseline,
                current_watermark=current,
                changelog=changelog,
                changelog_file=written_to,
            )

    def _run_synchronizer(
        self,
        mode: SyncMode,
        kb_path: Path,
        coordinates: KbCoordinates,
        db_options: KbDatabaseOptions,
    ) -> None:
        """
        Invoke checkout or update.

        Raises:
            SynchronizationError: If the synchronizer reports failure or raises
        """
        try:
            if mode is SyncMode.CHECKOUT:
                succeeded = self._synchronizer.checkout(kb_path, coordinates, db_options)
            else:
                succeeded = self._synchronizer.update(kb_path, coordinates)
        except KbSyncError:
            raise
        except Exception as e:
            log.error("synchronizer_failed", mode=mode.value, error=str(e))
            raise SynchronizationError(f"error executing {mode.value}: {e}") from e

        if not succeeded:
            log.error("synchronizer_reported_failure", mode=mode.value)
            raise SynchronizationError(f"error executing {mode.value}", {"mode": mode.value})

    def _query_current_revision(
        self, coordinates: KbCoordinates, as_of: datetime
    ) -> RevisionWatermark:
        try:
            return self._remote_source.latest_revision(coordinates, None, as_of)
        except KbSyncError:
            raise
        except Exception as e:
            log.error("remote_revision_query_failed", kb_name=coordinates.kb_name, error=str(e))
            raise RemoteQueryError(f"Failed to query latest revision: {e}") from e
