"""Tests for the checkout/update cycle."""

import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from kbsync.exceptions import RemoteQueryError, SyncCancelledError, SynchronizationError
from kbsync.models.config import KbDatabaseOptions
from kbsync.models.revision import MIN_WATERMARK, ChangeEntry, RevisionInfo, RevisionWatermark
from kbsync.sync.changelog_generator import ChangelogGenerator
from kbsync.sync.models import SyncMode
from kbsync.sync.sync_orchestrator import SyncOrchestrator
from tests.fakes import FakeRemoteSource, FakeSynchronizer, utc


D1 = utc(2024, 3, 1, 9, 0)
D2 = utc(2024, 3, 2, 17, 30)

CHANGES = [
    ChangeEntry(revision=6, revision_date=utc(2024, 3, 1, 12, 0), author="luis"),
    ChangeEntry(revision=8, revision_date=D2, author="ana"),
]


def _orchestrator(history, store, remote=None, synchronizer=None):
    remote = remote or FakeRemoteSource(RevisionInfo(revision=8, revision_date=D2), CHANGES)
    synchronizer = synchronizer or FakeSynchronizer()
    orchestrator = SyncOrchestrator(
        remote_source=remote,
        synchronizer=synchronizer,
        watermark_store=store,
        history=history,
    )
    return orchestrator, remote, synchronizer


def _init_kb(workspace: Path, kb_name: str, marker: str = "knowledgebase.gxw") -> None:
    kb_path = workspace / kb_name
    kb_path.mkdir(parents=True, exist_ok=True)
    (kb_path / marker).write_text("")


class TestModeSelection:
    def test_fresh_workspace_is_checked_out(self, history, store, workspace, coordinates):
        orchestrator, _, synchronizer = _orchestrator(history, store)
        build = history.create_build(1)

        result = orchestrator.synchronize(build, workspace, coordinates)

        assert result.mode is SyncMode.CHECKOUT
        assert synchronizer.checkouts == [workspace / "SalesKB"]
        assert synchronizer.updates == []

    def test_existing_kb_is_updated(self, history, store, workspace, coordinates):
        _init_kb(workspace, coordinates.kb_name)
        orchestrator, _, synchronizer = _orchestrator(history, store)
        build = history.create_build(1)

        result = orchestrator.synchronize(build, workspace, coordinates)

        assert result.mode is SyncMode.UPDATE
        assert synchronizer.updates == [workspace / "SalesKB"]
        assert synchronizer.checkouts == []

    def test_marker_match_is_case_insensitive(self, history, store, workspace, coordinates):
        _init_kb(workspace, coordinates.kb_name, marker="SALES.GXW")
        orchestrator, _, _ = _orchestrator(history, store)

        assert orchestrator.select_mode(workspace / coordinates.kb_name) is SyncMode.UPDATE

    def test_kb_directory_without_marker_is_checked_out(self, history, store, workspace, coordinates):
        (workspace / coordinates.kb_name).mkdir()
        (workspace / coordinates.kb_name / "readme.txt").write_text("")
        orchestrator, _, _ = _orchestrator(history, store)

        assert orchestrator.select_mode(workspace / coordinates.kb_name) is SyncMode.CHECKOUT

    def test_second_build_updates_what_the_first_checked_out(
        self, history, store, workspace, coordinates
    ):
        orchestrator, _, synchronizer = _orchestrator(history, store)

        orchestrator.synchronize(history.create_build(1), workspace, coordinates)
        result = orchestrator.synchronize(history.create_build(2), workspace, coordinates)

        assert result.mode is SyncMode.UPDATE
        assert len(synchronizer.checkouts) == 1
        assert len(synchronizer.updates) == 1

    def test_db_options_are_passed_to_checkout(self, history, store, workspace, coordinates):
        orchestrator, _, synchronizer = _orchestrator(history, store)
        options = KbDatabaseOptions(server_instance="(local)", database_name="SalesDb")

        orchestrator.synchronize(history.create_build(1), workspace, coordinates, db_options=options)

        assert synchronizer.db_options == [options]


class TestPersistence:
    def test_current_watermark_is_persisted(self, history, store, workspace, coordinates):
        orchestrator, _, _ = _orchestrator(history, store)
        build = history.create_build(1)

        result = orchestrator.synchronize(build, workspace, coordinates)

        assert store.load(build) == RevisionWatermark(revision=8, revision_date=D2)
        assert result.current_watermark.revision == 8

    def test_revision_is_queried_as_of_sync_start(self, history, store, workspace, coordinates):
        orchestrator, remote, _ = _orchestrator(history, store)
        before = datetime.now(timezone.utc)

        orchestrator.synchronize(history.create_build(1), workspace, coordinates)

        window_start, window_end = remote.latest_calls[0]
        assert window_start is None
        assert before <= window_end <= datetime.now(timezone.utc)

    def test_synchronizer_failure_persists_nothing(self, history, store, workspace, coordinates):
        orchestrator, remote, _ = _orchestrator(
            history, store, synchronizer=FakeSynchronizer(succeed=False)
        )
        build = history.create_build(1)

        with pytest.raises(SynchronizationError, match="error executing checkout"):
            orchestrator.synchronize(build, workspace, coordinates)

        assert store.find(build) is None
        assert remote.latest_calls == []

    def test_synchronizer_exception_is_reported_verbatim(
        self, history, store, workspace, coordinates
    ):
        orchestrator, _, _ = _orchestrator(
            history, store, synchronizer=FakeSynchronizer(error=OSError("msbuild exited with 1"))
        )
        build = history.create_build(1)

        with pytest.raises(SynchronizationError, match="msbuild exited with 1"):
            orchestrator.synchronize(build, workspace, coordinates)

        assert store.find(build) is None

    def test_remote_failure_persists_nothing(self, history, store, workspace, coordinates):
        remote = FakeRemoteSource(
            RevisionInfo(revision=8, revision_date=D2), latest_error=ConnectionError("refused")
        )
        orchestrator, _, _ = _orchestrator(history, store, remote=remote)
        build = history.create_build(1)

        with pytest.raises(RemoteQueryError, match="refused"):
            orchestrator.synchronize(build, workspace, coordinates)

        assert store.find(build) is None

    def test_failed_build_is_skipped_by_next_baseline(self, history, store, workspace, coordinates):
        orchestrator, _, _ = _orchestrator(history, store)
        first = history.create_build(1)
        store.save(first, RevisionWatermark(revision=5, revision_date=D1))

        failing, _, _ = _orchestrator(history, store, synchronizer=FakeSynchronizer(succeed=False))
        with pytest.raises(SynchronizationError):
            failing.synchronize(history.create_build(2), workspace, coordinates)

        result = orchestrator.synchronize(history.create_build(3), workspace, coordinates)

        assert result.baseline == RevisionWatermark(revision=5, revision_date=D1)

    def test_cancellation_persists_nothing(self, history, store, workspace, coordinates):
        cancel_event = threading.Event()

        class CancellingSynchronizer(FakeSynchronizer):
            def checkout(self, kb_path, coordinates, db_options):
                cancel_event.set()
                return super().checkout(kb_path, coordinates, db_options)

        orchestrator, remote, _ = _orchestrator(
            history, store, synchronizer=CancellingSynchronizer()
        )
        build = history.create_build(1)

        with pytest.raises(SyncCancelledError):
            orchestrator.synchronize(build, workspace, coordinates, cancel_event=cancel_event)

        assert store.find(build) is None
        assert remote.latest_calls == []


class TestChangelog:
    def test_changelog_covers_previous_baseline_to_current(
        self, history, store, workspace, coordinates
    ):
        orchestrator, remote, _ = _orchestrator(history, store)
        store.save(history.create_build(1), RevisionWatermark(revision=5, revision_date=D1))

        result = orchestrator.synchronize(history.create_build(2), workspace, coordinates)

        assert result.baseline.revision == 5
        assert [e.revision for e in result.changelog.entries] == [6, 8]
        assert remote.changes_calls == [(D1, D2)]

    def test_first_build_lists_full_history(self, history, store, workspace, coordinates):
        orchestrator, _, _ = _orchestrator(history, store)

        result = orchestrator.synchronize(history.create_build(1), workspace, coordinates)

        assert result.baseline == MIN_WATERMARK
        assert result.total_changes == 2

    def test_explicit_baseline_is_used(self, history, store, workspace, coordinates):
        orchestrator, remote, _ = _orchestrator(history, store)
        explicit = RevisionWatermark(revision=7, revision_date=utc(2024, 3, 2, 8, 0))

        result = orchestrator.synchronize(
            history.create_build(1), workspace, coordinates, baseline=explicit
        )

        assert result.baseline == explicit
        assert [e.revision for e in result.changelog.entries] == [8]

    def test_unchanged_remote_writes_empty_changelog(self, history, store, workspace, coordinates):
        orchestrator, _, _ = _orchestrator(history, store)
        store.save(history.create_build(1), RevisionWatermark(revision=8, revision_date=D2))
        build = history.create_build(2)
        changelog_file = build.root_dir / "changelog.json"

        result = orchestrator.synchronize(build, workspace, coordinates, changelog_file=changelog_file)

        assert result.changelog.is_empty
        assert result.changelog_file == changelog_file
        assert ChangelogGenerator.read(changelog_file).is_empty

    def test_changelog_failure_keeps_watermark(self, history, store, workspace, coordinates):
        remote = FakeRemoteSource(
            RevisionInfo(revision=8, revision_date=D2),
            CHANGES,
            changes_error=RuntimeError("log service down"),
        )
        orchestrator, _, _ = _orchestrator(history, store, remote=remote)
        build = history.create_build(1)
        changelog_file = build.root_dir / "changelog.json"

        result = orchestrator.synchronize(build, workspace, coordinates, changelog_file=changelog_file)

        assert result.changelog.is_empty
        assert changelog_file.is_file()
        assert store.load(build).revision == 8

    def test_cancellation_during_enumeration_writes_no_changelog(
        self, history, store, workspace, coordinates
    ):
        cancel_event = threading.Event()

        class CancellingRemote(FakeRemoteSource):
            def changes_between(self, coordinates, from_date, to_date):
                cancel_event.set()
                return super().changes_between(coordinates, from_date, to_date)

        remote = CancellingRemote(RevisionInfo(revision=8, revision_date=D2), CHANGES)
        orchestrator, _, _ = _orchestrator(history, store, remote=remote)
        build = history.create_build(1)
        changelog_file = build.root_dir / "changelog.json"

        with pytest.raises(SyncCancelledError):
            orchestrator.synchronize(
                build,
                workspace,
                coordinates,
                changelog_file=changelog_file,
                cancel_event=cancel_event,
            )

        assert not changelog_file.exists()
        assert store.load(build).revision == 8
