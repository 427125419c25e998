"""Error kinds raised by photo store and fetcher implementations.

The reconciler catches these per source and records them in the source's
``UploadResult``. Only ``RemoteQueryError`` raised during album discovery
escapes a reconciliation.
"""

from flickr_album_uploader.models import ErrorKind


class PhotoStoreError(Exception):
    """Base exception for photo store and fetcher failures.

    Attributes:
        kind: The ``ErrorKind`` recorded in a failed ``UploadResult``.
    """

    kind: ErrorKind = ErrorKind.REMOTE_QUERY

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class RemoteQueryError(PhotoStoreError):
    """Listing albums or album photos failed."""

    kind = ErrorKind.REMOTE_QUERY


class RemoteWriteError(PhotoStoreError):
    """A mutating call on the photo store failed."""

    kind = ErrorKind.REMOTE_WRITE


class AlbumCreateError(RemoteWriteError):
    """Creating an album with a primary photo failed."""

    kind = ErrorKind.ALBUM_CREATE


class UploadError(PhotoStoreError):
    """Uploading photo bytes failed."""

    kind = ErrorKind.UPLOAD


class FetchError(PhotoStoreError):
    """Downloading a photo from its source URL failed."""

    kind = ErrorKind.FETCH
