"""Shared fixtures for sync tests."""

from pathlib import Path

import pytest

from kbsync.history.build_history import FileSystemBuildHistory
from kbsync.models.config import KbCoordinates
from kbsync.storage.watermark_store import WatermarkStore


@pytest.fixture
def coordinates() -> KbCoordinates:
    return KbCoordinates(
        server_url="https://sandbox.example.com/v15",
        kb_name="SalesKB",
        kb_version="Trunk",
        username="builder",
        password="secret",
    )


@pytest.fixture
def history(tmp_path: Path) -> FileSystemBuildHistory:
    return FileSystemBuildHistory(tmp_path / "builds")


@pytest.fixture
def store() -> WatermarkStore:
    return WatermarkStore()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "workspace"
    path.mkdir()
    return path
