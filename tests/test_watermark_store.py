"""Unit tests for WatermarkStore."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from kbsync.exceptions import RecordNotFoundError
from kbsync.history.build_history import BuildRecord
from kbsync.models.revision import RevisionInfo, RevisionWatermark
from kbsync.storage.watermark_store import WatermarkStore


@pytest.fixture
def build(tmp_path: Path) -> BuildRecord:
    root = tmp_path / "builds" / "12"
    root.mkdir(parents=True)
    return BuildRecord(number=12, root_dir=root)


@pytest.fixture
def watermark() -> RevisionWatermark:
    return RevisionWatermark(revision=42, revision_date=datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc))


def test_save_then_load_returns_same_watermark(build, watermark):
    store = WatermarkStore()

    store.save(build, watermark)

    assert store.load(build) == watermark


def test_record_is_named_after_build_root(build):
    store = WatermarkStore(file_name="revision.json")

    assert store.record_path(build) == build.root_dir / "revision.json"


def test_record_document_layout(build, watermark):
    store = WatermarkStore()

    path = store.save(build, watermark)
    document = json.loads(path.read_text())

    assert document == {"revision": 42, "revisionDate": "2024-01-15T14:30:00Z"}


def test_save_overwrites_existing_record(build, watermark):
    store = WatermarkStore()
    newer = RevisionWatermark(revision=43, revision_date=datetime(2024, 1, 16, tzinfo=timezone.utc))

    store.save(build, watermark)
    store.save(build, newer)
    store.save(build, newer)

    assert store.load(build) == newer
    assert [p.name for p in build.root_dir.iterdir()] == ["revision.json"]


def test_extra_remote_metadata_is_persisted(build):
    store = WatermarkStore()
    info = RevisionInfo.model_validate(
        {"revision": 5, "revisionDate": "2024-01-01T00:00:00+00:00", "comment": "fix"}
    )

    path = store.save(build, info)

    assert json.loads(path.read_text())["comment"] == "fix"
    assert store.load(build).revision == 5


def test_missing_record_raises_not_found(build):
    store = WatermarkStore()

    with pytest.raises(RecordNotFoundError) as exc_info:
        store.load(build)

    assert exc_info.value.build_number == 12
    assert exc_info.value.corrupt is False
    assert store.find(build) is None


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        "",
        "[]",
        '{"revisionDate": "2024-01-01T00:00:00Z"}',
        '{"revision": 3}',
        '{"revision": "three", "revisionDate": "2024-01-01T00:00:00Z"}',
        '{"revision": 9, "revisionDate": 1e30}',
        '{"revision": 9, "revisionDate": Infinity}',
        '{"revision": 9, "revisionDate": NaN}',
    ],
)
def test_corrupt_record_raises_not_found(build, content):
    (build.root_dir / "revision.json").write_text(content)
    store = WatermarkStore()

    with pytest.raises(RecordNotFoundError) as exc_info:
        store.load(build)

    assert exc_info.value.corrupt is True


def test_unknown_fields_are_ignored(build):
    (build.root_dir / "revision.json").write_text(
        json.dumps(
            {
                "revision": 8,
                "revisionDate": "2024-04-01T10:00:00+00:00",
                "schemaVersion": 3,
                "branch": {"name": "main"},
            }
        )
    )

    watermark = WatermarkStore().load(build)

    assert watermark == RevisionWatermark(
        revision=8, revision_date=datetime(2024, 4, 1, 10, tzinfo=timezone.utc)
    )


def test_legacy_record_is_read_when_current_is_absent(build):
    (build.root_dir / "revision.txt").write_text('{"revision":17,"revisionDate":1704067200000}')

    watermark = WatermarkStore().load(build)

    assert watermark.revision == 17
    assert watermark.revision_date == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_current_record_wins_over_legacy(build, watermark):
    (build.root_dir / "revision.txt").write_text('{"revision":1,"revisionDate":0}')
    store = WatermarkStore()

    store.save(build, watermark)

    assert store.load(build).revision == 42


def test_save_creates_missing_build_directory(tmp_path, watermark):
    build = BuildRecord(number=1, root_dir=tmp_path / "builds" / "1")

    WatermarkStore().save(build, watermark)

    assert (build.root_dir / "revision.json").is_file()
