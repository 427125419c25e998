"""Interfaces the reconciler depends on."""

from collections.abc import Iterable, Sequence
from typing import Protocol

from flickr_album_uploader.models import AlbumRef


class PhotoStore(Protocol):
    """Remote photo-hosting service holding albums and photos."""

    async def list_albums(self) -> Sequence[AlbumRef]:
        """Return every album owned by the authenticated user.

        Raises:
            RemoteQueryError: If the albums cannot be listed
        """
        ...

    async def create_album(self, title: str, primary_photo_id: str) -> AlbumRef:
        """Create an album with ``primary_photo_id`` as its first photo.

        Raises:
            AlbumCreateError: If the album cannot be created
        """
        ...

    async def add_photo_to_album(self, album_id: str, photo_id: str) -> None:
        """Attach an already uploaded photo to an album.

        Raises:
            RemoteWriteError: If the photo cannot be attached
        """
        ...

    async def upload_photo(
        self,
        content: bytes,
        title: str,
        description: str,
        tags: Iterable[str],
        *,
        is_public: bool = False,
    ) -> str:
        """Upload photo bytes and return the new photo ID.

        Raises:
            UploadError: If the upload fails
        """
        ...

    async def get_album_photo_tags(self, album_id: str) -> Sequence[str]:
        """Return the tags of every photo in an album.

        Raises:
            RemoteQueryError: If the album's photos cannot be listed
        """
        ...


class Fetcher(Protocol):
    """Downloads photo bytes from a source URL."""

    async def fetch(self, url: str) -> bytes:
        """Return the body behind ``url``.

        Raises:
            FetchError: If the download fails
        """
        ...
