"""Pydantic models for KB revisions, persisted records and changelogs."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RevisionWatermark(BaseModel):
    """A point in the remote KB history: revision number plus revision date.

    Ordering only looks at ``revision``. The date is used to bound remote
    queries and changelog windows.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    revision: int = Field(default=..., ge=0, description="Remote revision number")
    revision_date: datetime = Field(
        default=..., alias="revisionDate", description="Timestamp of the revision"
    )

    @field_validator("revision_date", mode="before")
    @classmethod
    def parse_revision_date(cls, v: Any) -> Any:
        """Numbers are epoch milliseconds, as written by older records."""
        if isinstance(v, bool):
            raise ValueError("revisionDate must be a timestamp")
        if isinstance(v, (int, float)):
            try:
                return datetime.fromtimestamp(v / 1000, tz=timezone.utc)
            except (OverflowError, OSError, ValueError) as e:
                raise ValueError(f"revisionDate out of range: {v!r}") from e
        return v

    @field_validator("revision_date")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return _as_utc(v)

    def is_newer_than(self, other: "RevisionWatermark") -> bool:
        return self.revision > other.revision

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, RevisionWatermark):
            return NotImplemented
        return self.revision > other.revision

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RevisionWatermark):
            return NotImplemented
        return self.revision < other.revision

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, RevisionWatermark):
            return NotImplemented
        return self.revision >= other.revision

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RevisionWatermark):
            return NotImplemented
        return self.revision <= other.revision

    def to_watermark(self) -> "RevisionWatermark":
        """Strip any extra metadata, keeping only the watermark fields."""
        return RevisionWatermark(revision=self.revision, revision_date=self.revision_date)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted record layout."""
        return self.model_dump(mode="json", by_alias=True)


MIN_WATERMARK = RevisionWatermark(
    revision=0, revision_date=datetime.min.replace(tzinfo=timezone.utc)
)


class RevisionInfo(RevisionWatermark):
    """Revision reported by the remote source, with whatever metadata it carries."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "revision": 42,
                "revisionDate": "2024-01-15T14:30:00+00:00",
                "author": "jdoe",
            }
        },
    )


class ChangedObject(BaseModel):
    """A KB object touched by a revision."""

    name: str = Field(default=..., description="Object name")
    object_type: str | None = Field(default=None, description="Object type, e.g. Transaction")
    action: str | None = Field(default=None, description="Inserted, Modified, Deleted")


class ChangeEntry(BaseModel):
    """One revision in a changelog window."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    revision: int = Field(default=..., ge=0, description="Remote revision number")
    revision_date: datetime = Field(default=..., alias="revisionDate")
    author: str | None = Field(default=None, description="User who committed the revision")
    comment: str | None = Field(default=None, description="Commit comment")
    objects: list[ChangedObject] = Field(default_factory=list)

    @field_validator("revision_date")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return _as_utc(v)


class Changelog(BaseModel):
    """Changes between a baseline and the current revision.

    An empty changelog has no entries and no window dates.
    """

    model_config = ConfigDict(populate_by_name=True)

    from_date: datetime | None = Field(default=None, alias="fromDate")
    to_date: datetime | None = Field(default=None, alias="toDate")
    entries: list[ChangeEntry] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @classmethod
    def empty(cls) -> "Changelog":
        return cls()

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2) + "\n"
