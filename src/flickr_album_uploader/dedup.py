"""Duplicate detection via URL-hash machine tags stored on uploaded photos."""

import hashlib
import logging

from flickr_album_uploader.exceptions import RemoteQueryError
from flickr_album_uploader.protocols import PhotoStore

logger = logging.getLogger(__name__)

# Machine tag namespace/predicate marking photos uploaded by this tool
DEDUP_TAG_PREFIX = "automation:urlhash="


def dedup_key(url: str) -> str:
    """Return the stable fingerprint of a source URL (MD5 hex digest)."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def dedup_tag(url: str) -> str:
    """Return the machine tag embedding the dedup key of ``url``."""
    return f"{DEDUP_TAG_PREFIX}{dedup_key(url)}"


def is_dedup_tag(tag: str) -> bool:
    """Check whether a tag is a dedup marker.

    Flickr lower-cases tags, so the prefix is compared case-insensitively.
    """
    return tag.lower().startswith(DEDUP_TAG_PREFIX)


async def build_dedup_index(
    store: PhotoStore,
    album_id: str | None,
    best_effort: bool = False,
) -> frozenset[str]:
    """Collect the dedup markers already present in an album.

    Args:
        store: Photo store to query
        album_id: Album to inspect, or None for an album that does not exist yet
        best_effort: If True, a failed query yields an empty index instead of
            raising

    Returns:
        Snapshot of the dedup tags (lower case) found on the album's photos

    Raises:
        RemoteQueryError: If the album's photos cannot be listed and
            ``best_effort`` is False
    """
    if album_id is None:
        return frozenset()

    try:
        tags = await store.get_album_photo_tags(album_id)
    except RemoteQueryError as e:
        if not best_effort:
            raise
        logger.warning(
            f"Could not read tags of album {album_id}, continuing without "
            f"duplicate detection: {e}"
        )
        return frozenset()

    index = frozenset(tag.lower() for tag in tags if is_dedup_tag(tag))
    logger.debug(f"Album {album_id} has {len(index)} previously uploaded photo(s)")
    return index
