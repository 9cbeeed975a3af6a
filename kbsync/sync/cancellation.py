"""Cooperative cancellation checks between collaborator calls."""

import threading

import structlog

from kbsync.exceptions import SyncCancelledError

log = structlog.stdlib.get_logger()


def raise_if_cancelled(cancel_event: threading.Event | None, stage: str) -> None:
    """Raise SyncCancelledError if the surrounding build asked to stop."""
    if cancel_event is not None and cancel_event.is_set():
        log.warning("sync_cancelled", stage=stage)
        raise SyncCancelledError(f"Cancelled during {stage}", {"stage": stage})
