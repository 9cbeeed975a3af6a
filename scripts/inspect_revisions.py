#!/usr/bin/env python3
"""
Inspect revision records and changelogs left by previous builds.

Builds are expected under ``<builds-dir>/<build number>/``, each optionally
holding the revision record written after a successful synchronization.

Usage:
    python scripts/inspect_revisions.py --builds-dir DIR baseline [--build N]
    python scripts/inspect_revisions.py --builds-dir DIR record --build N
    python scripts/inspect_revisions.py changelog PATH
"""

import argparse
import sys

from kbsync.history.build_history import FileSystemBuildHistory
from kbsync.models.config import AppConfig, StoreConfig
from kbsync.storage.watermark_store import WatermarkStore
from kbsync.sync.baseline_resolver import BaselineResolver
from kbsync.sync.changelog_generator import ChangelogGenerator
from kbsync.utils.config_loader import ConfigLoader, ConfigurationError
from kbsync.utils.logging_config import configure_from_settings, configure_logging, get_logger

log = get_logger()


def _load_config(config_path: str | None, log_level: str) -> AppConfig | None:
    if config_path is None:
        return None
    config = ConfigLoader().load_config(config_path)
    configure_from_settings(config.logging, log_level=log_level)
    return config


def show_baseline(history: FileSystemBuildHistory, store: WatermarkStore, build: int | None) -> int:
    """Print the baseline a poll (or the given build) would resolve to."""
    resolver = BaselineResolver(store)

    if build is None:
        start = history.last_build()
    else:
        start = history.get_build(build)
        if start is None:
            print(f"Build #{build} not found in {history.builds_dir}")
            return 1

    watermark = resolver.resolve_from_build(history, start)
    origin = f"build #{start.number}" if start else "empty history"
    print(f"Baseline from {origin}:")
    print(f"  Revision: {watermark.revision}")
    print(f"  Date:     {watermark.revision_date.isoformat()}")
    return 0


def show_record(history: FileSystemBuildHistory, store: WatermarkStore, build: int) -> int:
    """Print the record of a single build, without walking history."""
    target = history.get_build(build)
    if target is None:
        print(f"Build #{build} not found in {history.builds_dir}")
        return 1

    watermark = store.find(target)
    if watermark is None:
        print(f"Build #{build}: no record")
        return 0

    print(f"Build #{build}: revision {watermark.revision} at {watermark.revision_date.isoformat()}")
    return 0


def show_changelog(path: str) -> int:
    """Print a summary of a changelog file."""
    changelog = ChangelogGenerator.read(path)

    if changelog.is_empty:
        print("No changes")
        return 0

    print(f"Changes from {changelog.from_date} to {changelog.to_date}:")
    for entry in changelog.entries:
        author = entry.author or "unknown"
        comment = entry.comment or ""
        print(f"  r{entry.revision} {entry.revision_date.isoformat()} {author}: {comment}")
        for obj in entry.objects:
            print(f"      {obj.action or '?'} {obj.object_type or ''} {obj.name}".rstrip())
    return 0


def main():
    """Main entry point for the inspection script."""
    parser = argparse.ArgumentParser(description="Inspect KB revision records and changelogs")
    parser.add_argument("--config", type=str, default=None, help="Path to configuration file")
    parser.add_argument("--builds-dir", type=str, default=None, help="Directory holding builds")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)

    baseline_parser = subparsers.add_parser("baseline", help="Resolve the baseline watermark")
    baseline_parser.add_argument("--build", type=int, default=None, help="Build number")

    record_parser = subparsers.add_parser("record", help="Show one build's record")
    record_parser.add_argument("--build", type=int, required=True, help="Build number")

    changelog_parser = subparsers.add_parser("changelog", help="Summarize a changelog file")
    changelog_parser.add_argument("path", type=str, help="Changelog file")

    args = parser.parse_args()

    configure_logging(log_level=args.log_level, json_logs=False)

    try:
        if args.command == "changelog":
            sys.exit(show_changelog(args.path))

        if args.builds_dir is None:
            parser.error("--builds-dir is required for this command")

        config = _load_config(args.config, args.log_level)
        store_config = config.store if config is not None else StoreConfig()
        store = WatermarkStore(
            file_name=store_config.revision_file_name,
            legacy_file_names=store_config.legacy_revision_file_names,
        )
        history = FileSystemBuildHistory(args.builds_dir)

        if args.command == "baseline":
            sys.exit(show_baseline(history, store, args.build))
        sys.exit(show_record(history, store, args.build))

    except (ConfigurationError, ValueError, OSError) as e:
        log.error("inspection_failed", command=args.command, error=str(e))
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
