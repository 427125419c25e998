"""Utility functions for the Flickr album uploader."""

import logging
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

from flickr_album_uploader.models import PhotoSource

logger = logging.getLogger(__name__)

DROPBOX_HOSTS = {"dropbox.com", "www.dropbox.com"}


def normalize_source_url(url: str) -> str:
    """Turn a share link into a direct download link.

    Dropbox share links (``?dl=0``) serve an HTML preview page; ``dl=1``
    makes Dropbox redirect to the raw file. Other URLs are returned unchanged.

    Args:
        url: Source URL as supplied by the caller

    Returns:
        URL that serves the image bytes
    """
    parts = urlsplit(url.strip())
    if parts.hostname not in DROPBOX_HOSTS:
        return url.strip()

    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in ("dl", "raw")
    ]
    query.append(("dl", "1"))
    return urlunsplit(parts._replace(query=urlencode(query)))


def title_from_url(url: str) -> str:
    """Derive a photo title from the file name in a URL.

    Args:
        url: Source URL

    Returns:
        File stem of the URL path, or the host name if the path has none
    """
    parts = urlsplit(url)
    stem = PurePosixPath(unquote(parts.path)).stem
    return stem or parts.hostname or url


def load_sources(path: Path, tags: Iterable[str] = ()) -> list[PhotoSource]:
    """Read photo sources from a text file with one URL per line.

    Blank lines and lines starting with ``#`` are ignored.

    Args:
        path: File to read
        tags: Extra tags applied to every source

    Returns:
        List of PhotoSource objects in file order

    Raises:
        FileNotFoundError: If path doesn't exist
    """
    if not path.exists():
        raise FileNotFoundError(f"Source list does not exist: {path}")

    extra_tags = frozenset(tags)
    sources: list[PhotoSource] = []

    for line in path.read_text(encoding="utf-8").splitlines():
        url = line.strip()
        if not url or url.startswith("#"):
            continue
        sources.append(PhotoSource(url=url, tags=extra_tags))

    logger.info(f"Loaded {len(sources)} source(s) from {path}")
    return sources
