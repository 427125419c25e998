"""Pytest configuration and shared fixtures."""

import asyncio
from collections.abc import Iterable

import pytest

from flickr_album_uploader.exceptions import (
    AlbumCreateError,
    FetchError,
    UploadError,
)
from flickr_album_uploader.models import AlbumRef, PhotoSource


class FakePhotoStore:
    """In-memory photo store recording every call made to it."""

    def __init__(self) -> None:
        self.albums: dict[str, AlbumRef] = {}
        self.members: dict[str, list[str]] = {}
        self.photo_tags: dict[str, list[str]] = {}
        self.calls: list[tuple] = []
        # Photo titles whose upload fails
        self.failing_titles: set[str] = set()
        self.list_error: Exception | None = None
        self.tags_error: Exception | None = None
        self.create_errors = 0
        self.attach_error: Exception | None = None
        self.upload_delay = 0.0
        self.active_uploads = 0
        self.max_active_uploads = 0
        self._next_id = 0

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}_{self._next_id}"

    def add_album(self, title: str, photo_tags: Iterable[Iterable[str]] = ()) -> AlbumRef:
        """Seed an existing album holding one photo per tag set."""
        album = AlbumRef(id=self._new_id("album"), title=title)
        self.albums[album.id] = album
        self.members[album.id] = []
        for tags in photo_tags:
            photo_id = self._new_id("existing")
            self.photo_tags[photo_id] = list(tags)
            self.members[album.id].append(photo_id)
        return album

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def list_albums(self) -> list[AlbumRef]:
        self.calls.append(("list_albums",))
        if self.list_error:
            raise self.list_error
        return list(self.albums.values())

    async def create_album(self, title: str, primary_photo_id: str) -> AlbumRef:
        self.calls.append(("create_album", title, primary_photo_id))
        if self.create_errors:
            self.create_errors -= 1
            raise AlbumCreateError(f"Could not create album '{title}'")
        album = AlbumRef(id=self._new_id("album"), title=title)
        self.albums[album.id] = album
        self.members[album.id] = [primary_photo_id]
        return album

    async def add_photo_to_album(self, album_id: str, photo_id: str) -> None:
        self.calls.append(("add_photo_to_album", album_id, photo_id))
        if self.attach_error:
            raise self.attach_error
        self.members[album_id].append(photo_id)

    async def upload_photo(
        self,
        content: bytes,
        title: str,
        description: str,
        tags: Iterable[str],
        *,
        is_public: bool = False,
    ) -> str:
        self.calls.append(("upload_photo", title, description, list(tags), is_public))
        self.active_uploads += 1
        self.max_active_uploads = max(self.max_active_uploads, self.active_uploads)
        try:
            if self.upload_delay:
                await asyncio.sleep(self.upload_delay)
            if title in self.failing_titles:
                raise UploadError(f"Could not upload '{title}'")
            photo_id = self._new_id("photo")
            self.photo_tags[photo_id] = list(tags)
            return photo_id
        finally:
            self.active_uploads -= 1

    async def get_album_photo_tags(self, album_id: str) -> list[str]:
        self.calls.append(("get_album_photo_tags", album_id))
        if self.tags_error:
            raise self.tags_error
        return [tag for photo in self.members[album_id] for tag in self.photo_tags[photo]]


class FakeFetcher:
    """Fetcher returning canned bytes, failing or stalling for chosen URLs."""

    def __init__(self) -> None:
        self.fetched: list[str] = []
        self.failing_urls: set[str] = set()
        self.slow_urls: set[str] = set()

    async def fetch(self, url: str) -> bytes:
        self.fetched.append(url)
        if url in self.slow_urls:
            await asyncio.sleep(5)
        if url in self.failing_urls:
            raise FetchError(f"HTTP 404 fetching {url}")
        return f"image bytes of {url}".encode()


@pytest.fixture
def store() -> FakePhotoStore:
    """Return an empty in-memory photo store."""
    return FakePhotoStore()


@pytest.fixture
def fetcher() -> FakeFetcher:
    """Return a fetcher that succeeds for every URL."""
    return FakeFetcher()


@pytest.fixture
def sources() -> list[PhotoSource]:
    """Return three photo sources with distinct URLs."""
    return [
        PhotoSource(url="https://x/a.jpg"),
        PhotoSource(url="https://x/b.jpg"),
        PhotoSource(url="https://x/c.jpg"),
    ]


@pytest.fixture
def credentials() -> dict[str, str]:
    """Return fake Flickr credentials for testing."""
    return {
        "api_key": "test_api_key",
        "api_secret": "test_api_secret",
        "access_token": "test_access_token",
        "access_secret": "test_access_secret",
    }


@pytest.fixture(autouse=True)
def clear_flickr_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep credentials from the developer's environment out of the tests."""
    for name in (
        "FLICKR_API_KEY",
        "FLICKR_API_SECRET",
        "FLICKR_ACCESS_TOKEN",
        "FLICKR_ACCESS_SECRET",
        "FLICKR_USER_ID",
    ):
        monkeypatch.delenv(name, raising=False)
