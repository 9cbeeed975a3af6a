"""Build identities and backward traversal of a job's build history."""

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

log = structlog.stdlib.get_logger()


@runtime_checkable
class BuildRef(Protocol):
    """A completed or running build, identified by number, owning a storage root."""

    @property
    def number(self) -> int: ...

    @property
    def root_dir(self) -> Path: ...


@runtime_checkable
class BuildHistory(Protocol):
    """Read-only view of a job's builds, supplied by the orchestration layer."""

    def last_build(self) -> BuildRef | None: ...

    def previous_build(self, build: BuildRef) -> BuildRef | None: ...


@dataclass(frozen=True)
class BuildRecord:
    """Plain build reference."""

    number: int
    root_dir: Path


def walk_back(history: BuildHistory, start: BuildRef | None) -> Iterator[BuildRef]:
    """
    Yield ``start`` and then each earlier build, one generation at a time.

    The sequence is lazy: the history is only consulted as the caller
    advances, so a consumer that stops at the first hit never touches older
    builds.

    Args:
        history: Build history to traverse
        start: Newest build to yield, or None for an empty walk

    Yields:
        Builds from newest to oldest
    """
    build = start
    while build is not None:
        yield build
        build = history.previous_build(build)


class FileSystemBuildHistory:
    """Build history laid out as ``<builds_dir>/<build number>/`` directories."""

    def __init__(self, builds_dir: str | Path):
        self._builds_dir: Path = Path(builds_dir)

    @property
    def builds_dir(self) -> Path:
        return self._builds_dir

    def _numbers(self) -> list[int]:
        if not self._builds_dir.is_dir():
            return []
        numbers = [
            int(entry.name)
            for entry in self._builds_dir.iterdir()
            if entry.is_dir() and entry.name.isdigit()
        ]
        return sorted(numbers)

    def get_build(self, number: int) -> BuildRecord | None:
        root_dir = self._builds_dir / str(number)
        if not root_dir.is_dir():
            return None
        return BuildRecord(number=number, root_dir=root_dir)

    def create_build(self, number: int) -> BuildRecord:
        """Create the storage root for a new build."""
        root_dir = self._builds_dir / str(number)
        root_dir.mkdir(parents=True, exist_ok=True)
        log.debug("build_directory_created", build_number=number, root_dir=str(root_dir))
        return BuildRecord(number=number, root_dir=root_dir)

    def last_build(self) -> BuildRecord | None:
        numbers = self._numbers()
        if not numbers:
            return None
        return BuildRecord(number=numbers[-1], root_dir=self._builds_dir / str(numbers[-1]))

    def previous_build(self, build: BuildRef) -> BuildRecord | None:
        earlier = [n for n in self._numbers() if n < build.number]
        if not earlier:
            return None
        return BuildRecord(number=earlier[-1], root_dir=self._builds_dir / str(earlier[-1]))
