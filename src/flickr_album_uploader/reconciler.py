"""Idempotent album reconciliation with deduplicated photo upload."""

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass, field
from typing import TypeVar

from flickr_album_uploader.dedup import build_dedup_index, dedup_tag
from flickr_album_uploader.exceptions import (
    AlbumCreateError,
    FetchError,
    PhotoStoreError,
    RemoteQueryError,
    RemoteWriteError,
    UploadError,
)
from flickr_album_uploader.models import (
    AlbumRef,
    PhotoSource,
    ReconcileOutcome,
    ReconciliationPlan,
    UploadResult,
    UploadStatus,
)
from flickr_album_uploader.protocols import Fetcher, PhotoStore
from flickr_album_uploader.utils import title_from_url

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ReconcilerConfig:
    """Tuning knobs for a reconciliation run.

    Attributes:
        is_public: Upload photos as public instead of private
        inter_request_delay: Seconds to wait after each source that hit the network
        operation_timeout: Per-call timeout in seconds, None for no timeout
        best_effort_index: Treat a failed album tag query as an empty index
        max_concurrent: Fetch and upload up to this many sources at once once
            the target album exists
    """

    is_public: bool = False
    inter_request_delay: float = 0.0
    operation_timeout: float | None = None
    best_effort_index: bool = False
    max_concurrent: int = 1

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.inter_request_delay < 0:
            raise ValueError("inter_request_delay cannot be negative")
        if self.operation_timeout is not None and self.operation_timeout <= 0:
            raise ValueError("operation_timeout must be positive")
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")


@dataclass
class _RunState:
    """Mutable bookkeeping for one reconciliation."""

    album_title: str
    album_id: str | None
    index: frozenset[str]
    claimed: set[str] = field(default_factory=set)
    attach_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class AlbumReconciler:
    """Uploads missing photos into a named album, creating it if absent."""

    def __init__(
        self,
        store: PhotoStore,
        fetcher: Fetcher,
        config: ReconcilerConfig | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            store: Photo store holding the target album
            fetcher: Downloader for photo source URLs
            config: Run configuration, defaults to ``ReconcilerConfig()``
        """
        self.store = store
        self.fetcher = fetcher
        self.config = config or ReconcilerConfig()

    async def reconcile(
        self, album_title: str, sources: Iterable[PhotoSource]
    ) -> ReconcileOutcome:
        """Make sure every source is uploaded exactly once into ``album_title``.

        Args:
            album_title: Title of the target album (matched case-insensitively)
            sources: Photo sources, processed in order

        Returns:
            The final album ID and one result per source, in input order

        Raises:
            RemoteQueryError: If the existing albums cannot be listed
        """
        return await self.run(ReconciliationPlan(album_title, tuple(sources)))

    async def run(self, plan: ReconciliationPlan) -> ReconcileOutcome:
        """Execute a reconciliation plan.

        Sources are handled one at a time until the album exists. With
        ``max_concurrent`` above one the remaining sources then run
        concurrently, and album membership order may differ from input order.
        """
        album = await self._find_album(plan.album_title)
        if album is None:
            logger.info(f"Album '{plan.album_title}' does not exist yet")
            album_id = None
        else:
            logger.info(f"Using existing album '{album.title}' ({album.id})")
            album_id = album.id

        state = _RunState(
            album_title=plan.album_title,
            album_id=album_id,
            index=await self._load_index(album_id),
        )

        results: list[UploadResult | None] = [None] * len(plan.sources)
        pending = list(enumerate(plan.sources))

        # The first successful upload decides the primary photo of a new album
        while pending and (self.config.max_concurrent == 1 or state.album_id is None):
            position, source = pending.pop(0)
            results[position] = await self._process_paced(source, state)

        if pending:
            semaphore = asyncio.Semaphore(self.config.max_concurrent)

            async def worker(position: int, source: PhotoSource) -> None:
                async with semaphore:
                    results[position] = await self._process_paced(source, state)

            await asyncio.gather(*(worker(p, s) for p, s in pending))

        outcome = ReconcileOutcome(
            album_id=state.album_id,
            results=[r for r in results if r is not None],
        )
        logger.info(
            f"Reconciled album '{plan.album_title}': {outcome.uploaded} uploaded, "
            f"{outcome.skipped} skipped, {outcome.failed} failed"
        )
        return outcome

    async def _call(
        self,
        awaitable: Awaitable[T],
        error_cls: type[PhotoStoreError],
        description: str,
    ) -> T:
        """Await a store or fetcher call, bounded by the operation timeout."""
        timeout = self.config.operation_timeout
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as e:
            raise error_cls(f"Timed out after {timeout}s while {description}") from e

    async def _find_album(self, title: str) -> AlbumRef | None:
        albums = await self._call(
            self.store.list_albums(), RemoteQueryError, "listing albums"
        )
        matches = [album for album in albums if album.matches(title)]
        if len(matches) > 1:
            logger.warning(
                f"Found {len(matches)} albums titled '{title}', using {matches[0].id}"
            )
        return matches[0] if matches else None

    async def _load_index(self, album_id: str | None) -> frozenset[str]:
        best_effort = self.config.best_effort_index
        try:
            return await self._call(
                build_dedup_index(self.store, album_id, best_effort),
                RemoteQueryError,
                f"reading tags of album {album_id}",
            )
        except RemoteQueryError as e:
            if not best_effort:
                raise
            logger.warning(f"Continuing without duplicate detection: {e}")
            return frozenset()

    async def _process_paced(self, source: PhotoSource, state: _RunState) -> UploadResult:
        result = await self._process(source, state)
        if result.status is not UploadStatus.SKIPPED and self.config.inter_request_delay:
            await asyncio.sleep(self.config.inter_request_delay)
        return result

    async def _process(self, source: PhotoSource, state: _RunState) -> UploadResult:
        """Take one source from Pending to a terminal state."""
        marker = dedup_tag(source.url)
        if marker in state.index:
            logger.debug(f"Skipping {source.url}: already in album")
            return UploadResult(source=source, status=UploadStatus.SKIPPED)
        if marker in state.claimed:
            logger.debug(f"Skipping {source.url}: repeated in this run")
            return UploadResult(source=source, status=UploadStatus.SKIPPED)
        state.claimed.add(marker)

        try:
            content = await self._call(
                self.fetcher.fetch(source.url), FetchError, f"fetching {source.url}"
            )
            photo_id = await self._upload(source, content, marker)
        except PhotoStoreError as e:
            logger.error(f"Failed to upload {source.url}: {e}")
            # A later repeat of this URL may try again
            state.claimed.discard(marker)
            return UploadResult(
                source=source,
                status=UploadStatus.FAILED,
                error_kind=e.kind,
                error_message=str(e),
            )

        warning = await self._place_in_album(photo_id, state)
        return UploadResult(
            source=source,
            status=UploadStatus.UPLOADED,
            photo_id=photo_id,
            warning=warning,
        )

    async def _upload(self, source: PhotoSource, content: bytes, marker: str) -> str:
        title = source.title or title_from_url(source.url)
        photo_id = await self._call(
            self.store.upload_photo(
                content,
                title,
                source.description or "",
                sorted(source.tags | {marker}),
                is_public=self.config.is_public,
            ),
            UploadError,
            f"uploading {source.url}",
        )
        logger.info(f"Uploaded '{title}' as photo {photo_id}")
        return photo_id

    async def _place_in_album(self, photo_id: str, state: _RunState) -> str | None:
        """Create the album around ``photo_id`` or attach it to the existing one.

        Returns:
            A warning message if the photo could not be placed, else None
        """
        if state.album_id is None:
            try:
                album = await self._call(
                    self.store.create_album(state.album_title, photo_id),
                    AlbumCreateError,
                    f"creating album '{state.album_title}'",
                )
            except RemoteWriteError as e:
                logger.error(f"Failed to create album '{state.album_title}': {e}")
                return f"Album creation failed: {e}"
            state.album_id = album.id
            logger.info(
                f"Created album '{state.album_title}' ({album.id}) "
                f"with primary photo {photo_id}"
            )
            return None

        async with state.attach_lock:
            try:
                await self._call(
                    self.store.add_photo_to_album(state.album_id, photo_id),
                    RemoteWriteError,
                    f"adding photo {photo_id} to album {state.album_id}",
                )
            except RemoteWriteError as e:
                logger.warning(
                    f"Photo {photo_id} uploaded but not added to album "
                    f"{state.album_id}: {e}"
                )
                return f"Not added to album: {e}"
        return None
