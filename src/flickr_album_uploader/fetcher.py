"""HTTP fetcher for photo source URLs, with retries."""

import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from flickr_album_uploader.exceptions import FetchError
from flickr_album_uploader.utils import normalize_source_url

logger = logging.getLogger(__name__)


class TransientFetchError(FetchError):
    """Network failure or 5xx response worth retrying."""

    pass


class HttpFetcher:
    """Downloads photo bytes over HTTP(S). Implements the ``Fetcher`` protocol."""

    def __init__(self, timeout: float = 60.0) -> None:
        """Initialize the fetcher.

        Args:
            timeout: HTTP timeout in seconds for each download
        """
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HttpFetcher":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the httpx AsyncClient instance.

        Raises:
            RuntimeError: If fetcher is used outside of async context manager
        """
        if self._client is None:
            raise RuntimeError("Fetcher must be used within async context manager")
        return self._client

    @retry(
        retry=retry_if_exception_type(TransientFetchError),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def fetch(self, url: str) -> bytes:
        """Download the image behind a URL.

        Dropbox share links are rewritten to their direct download form first.

        Args:
            url: Source URL

        Returns:
            Response body

        Raises:
            FetchError: If the download fails or does not look like an image
        """
        try:
            download_url = normalize_source_url(url)
        except ValueError as e:
            raise FetchError(f"Invalid URL {url}: {e}") from e
        if download_url != url:
            logger.debug(f"Rewrote {url} to {download_url}")

        try:
            response = await self.client.get(download_url)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise FetchError(f"Cannot fetch {url}: {e}") from e
        except httpx.TransportError as e:
            logger.warning(f"Network error while fetching {url}, will retry: {e}")
            raise TransientFetchError(f"Network error fetching {url}: {e}") from e
        except httpx.RequestError as e:
            raise FetchError(f"Request failed fetching {url}: {e}") from e

        if response.status_code >= 500:
            logger.warning(f"Server error {response.status_code} while fetching {url}, will retry")
            raise TransientFetchError(f"Server error {response.status_code} fetching {url}")
        if response.status_code >= 400:
            raise FetchError(f"HTTP {response.status_code} fetching {url}")

        content_type = response.headers.get("content-type", "")
        if content_type.startswith("text/html"):
            raise FetchError(f"Expected an image but got an HTML page from {url}")
        if not response.content:
            raise FetchError(f"Empty response fetching {url}")

        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return response.content
