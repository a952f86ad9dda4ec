"""Vector store data models."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

SNAPSHOT_VERSION = 1


def _as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class MediaType(str, Enum):
    """Kinds of indexed items."""

    PHOTO = "photo"
    VIDEO = "video"
    DOCUMENT = "document"


class LocationInfo(BaseModel):
    """Where an item was captured."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    place_name: str | None = None


class VectorMetadata(BaseModel):
    """Descriptive payload attached to a stored vector.

    Attributes:
        description: Free-text description of the item.
        keywords: Labels used by keyword search (order is irrelevant).
        transcript: Speech transcript, for items with audio.
        people: Names of people in the item.
        media_type: Kind of item.
        duration: Length in seconds, for time-based media.
        created_at: Capture or creation time.
        location: Capture location.
    """

    model_config = ConfigDict(frozen=True)

    description: str = ""
    keywords: tuple[str, ...] = ()
    transcript: str | None = None
    people: tuple[str, ...] | None = None
    media_type: MediaType = MediaType.PHOTO
    duration: float | None = Field(default=None, ge=0)
    created_at: datetime | None = None
    location: LocationInfo | None = None

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class VectorEntry(BaseModel):
    """A stored vector with its metadata.

    Entries are immutable; the store replaces them wholesale on upsert.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Caller-assigned identifier")
    vector: tuple[float, ...] = Field(description="Embedding vector")
    metadata: VectorMetadata = Field(description="Item metadata")
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Time of the last write",
    )

    @field_validator("updated_at")
    @classmethod
    def _updated_at_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)  # type: ignore[return-value]


class VectorEntryInput(BaseModel):
    """One item of an `upsert_batch` call."""

    id: str = Field(min_length=1)
    vector: list[float]
    metadata: VectorMetadata


class SearchFilters(BaseModel):
    """Constraints applied to entries before scoring.

    Unset fields impose no constraint. Date bounds are inclusive and
    require the entry to have `created_at`; `person` is a
    case-insensitive substring match against any name in `people`.
    """

    start_date: datetime | None = None
    end_date: datetime | None = None
    media_type: MediaType | None = None
    person: str | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _dates_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    def matches(self, metadata: VectorMetadata) -> bool:
        """Whether an entry's metadata satisfies every set constraint."""
        if self.start_date is not None:
            if metadata.created_at is None or metadata.created_at < self.start_date:
                return False
        if self.end_date is not None:
            if metadata.created_at is None or metadata.created_at > self.end_date:
                return False
        if self.media_type is not None and metadata.media_type != self.media_type:
            return False
        if self.person is not None:
            needle = self.person.lower()
            if not any(needle in name.lower() for name in metadata.people or []):
                return False
        return True


class SearchResult(BaseModel):
    """Result from a similarity or hybrid search.

    Attributes:
        id: Entry identifier.
        score: Similarity score (higher is more similar).
        metadata: Stored metadata.
    """

    id: str = Field(description="Entry identifier")
    score: float = Field(description="Similarity score")
    metadata: VectorMetadata = Field(description="Entry metadata")


class StoreSnapshot(BaseModel):
    """The persisted document: every entry plus a format version."""

    version: int = SNAPSHOT_VERSION
    entries: list[VectorEntry] = Field(default_factory=list)
