"""Data models for the Flickr album uploader."""

from dataclasses import dataclass, field
from enum import Enum


class UploadStatus(str, Enum):
    """Terminal status of one photo source within a reconciliation."""

    UPLOADED = "uploaded"
    SKIPPED = "skipped"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Kinds of failure a photo store or fetcher operation can report."""

    REMOTE_QUERY = "remote_query"
    REMOTE_WRITE = "remote_write"
    UPLOAD = "upload"
    FETCH = "fetch"
    ALBUM_CREATE = "album_create"


@dataclass(frozen=True)
class AlbumRef:
    """A remote album (Flickr photoset)."""

    id: str
    title: str

    def matches(self, title: str) -> bool:
        """Return True if this album's title equals ``title`` ignoring case."""
        return self.title.casefold() == title.casefold()


@dataclass(frozen=True)
class PhotoSource:
    """One photo to upload, identified by the URL it is fetched from."""

    url: str
    title: str | None = None
    description: str | None = None
    tags: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        """Validate source data."""
        if not self.url:
            raise ValueError("Photo source URL cannot be empty")
        # Accept any iterable of tags but store them immutably
        object.__setattr__(self, "tags", frozenset(self.tags))


@dataclass(frozen=True)
class UploadResult:
    """Outcome of reconciling a single photo source."""

    source: PhotoSource
    status: UploadStatus
    photo_id: str | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None
    warning: str | None = None

    def __post_init__(self) -> None:
        """Validate upload result."""
        if self.status is UploadStatus.UPLOADED and not self.photo_id:
            raise ValueError("Uploaded result must have a photo_id")
        if self.status is UploadStatus.FAILED and not (
            self.error_kind and self.error_message
        ):
            raise ValueError("Failed result must have an error_kind and error_message")

    @property
    def success(self) -> bool:
        """True unless the source failed."""
        return self.status is not UploadStatus.FAILED


@dataclass(frozen=True)
class ReconciliationPlan:
    """The unit of work for one reconciliation: a target album and its sources."""

    album_title: str
    sources: tuple[PhotoSource, ...]

    def __post_init__(self) -> None:
        """Validate plan data."""
        if not self.album_title or not self.album_title.strip():
            raise ValueError("Album title cannot be empty")
        object.__setattr__(self, "sources", tuple(self.sources))


@dataclass(frozen=True)
class ReconcileOutcome:
    """Result of a reconciliation: the final album id and per-source results."""

    album_id: str | None
    results: list[UploadResult]

    def _count(self, status: UploadStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def uploaded(self) -> int:
        return self._count(UploadStatus.UPLOADED)

    @property
    def skipped(self) -> int:
        return self._count(UploadStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(UploadStatus.FAILED)

    @property
    def warnings(self) -> list[UploadResult]:
        """Results carrying a non-fatal warning."""
        return [r for r in self.results if r.warning]
