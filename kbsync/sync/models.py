"""Data models for polling and synchronization results."""

import enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from kbsync.models.revision import Changelog, RevisionWatermark


class PollingVerdict(str, enum.Enum):
    """Outcome of comparing the remote revision with the baseline."""

    NO_CHANGE = "no_change"
    SIGNIFICANT_CHANGE = "significant_change"


class SyncMode(str, enum.Enum):
    """How the local workspace was brought up to date."""

    CHECKOUT = "checkout"
    UPDATE = "update"


class PollingDecision(BaseModel):
    """Result of one poll. Recomputed on every poll, never persisted."""

    model_config = ConfigDict(frozen=True)

    baseline: RevisionWatermark = Field(..., description="Previously known state")
    current: RevisionWatermark = Field(..., description="State reported by the remote source")
    verdict: PollingVerdict = Field(..., description="Whether a build should be triggered")

    @property
    def has_changes(self) -> bool:
        """Check if the remote revision advanced past the baseline."""
        return self.verdict is PollingVerdict.SIGNIFICANT_CHANGE


class SyncResult(BaseModel):
    """Report of one checkout/update cycle."""

    mode: SyncMode = Field(..., description="Checkout or update")
    baseline: RevisionWatermark = Field(..., description="Baseline used for the changelog")
    current_watermark: RevisionWatermark = Field(..., description="Watermark persisted for the build")
    changelog: Changelog = Field(default_factory=Changelog)
    changelog_file: Path | None = Field(default=None, description="Where the changelog was written")

    @property
    def total_changes(self) -> int:
        """Get number of revisions in the changelog."""
        return len(self.changelog.entries)
