"""Per-build persistence of revision records."""

from kbsync.storage.watermark_store import WatermarkStore

__all__ = ["WatermarkStore"]
