"""Flickr API client with retry logic using httpx for async HTTP calls."""

import logging
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from typing import Any, NoReturn
from urllib.parse import urlencode

import httpx
from oauthlib.oauth1 import Client as OAuth1Client
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from flickr_album_uploader.exceptions import (
    AlbumCreateError,
    RemoteQueryError,
    RemoteWriteError,
    UploadError,
)
from flickr_album_uploader.models import AlbumRef

logger = logging.getLogger(__name__)

# Flickr API endpoints
REST_URL = "https://api.flickr.com/services/rest/"
UPLOAD_URL = "https://up.flickr.com/services/upload/"

# Maximum page size accepted by the photoset listing methods
PAGE_SIZE = 500

# "Service currently unavailable", "Write operation failed"
RETRYABLE_ERROR_CODES = {105, 106}

# flickr.photosets.addPhoto: "Photo already in set"
PHOTO_ALREADY_IN_SET = 3


class FlickrAPIError(Exception):
    """Base exception for Flickr API errors."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class RateLimitError(FlickrAPIError):
    """Exception raised when hitting rate limits."""

    pass


class ServerError(FlickrAPIError):
    """Exception raised for 5xx server errors."""

    pass


def _text(value: Any) -> str:
    """Unwrap Flickr's ``{"_content": ...}`` JSON text nodes."""
    if isinstance(value, dict):
        return str(value.get("_content", ""))
    return "" if value is None else str(value)


def _quote_tag(tag: str) -> str:
    """Quote a tag for Flickr's space separated tag lists."""
    return f'"{tag}"' if " " in tag else tag


class FlickrAPIClient:
    """Client for the Flickr REST and upload APIs using httpx.

    Implements the ``PhotoStore`` protocol. Every request is signed with
    OAuth 1.0a user credentials.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        access_token: str,
        access_secret: str,
        user_id: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        """Initialize Flickr API client.

        Args:
            api_key: Flickr application key
            api_secret: Flickr application secret
            access_token: OAuth access token with write permission
            access_secret: OAuth access token secret
            user_id: NSID whose albums are listed, defaults to the token owner
            timeout: HTTP timeout in seconds for each request
        """
        self.user_id = user_id
        self.timeout = timeout
        self._oauth = OAuth1Client(
            api_key,
            client_secret=api_secret,
            resource_owner_key=access_token,
            resource_owner_secret=access_secret,
        )
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "FlickrAPIClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the httpx AsyncClient instance.

        Returns:
            The httpx.AsyncClient instance

        Raises:
            RuntimeError: If client is used outside of async context manager
        """
        if self._client is None:
            raise RuntimeError("Client must be used within async context manager")
        return self._client

    async def list_albums(self) -> list[AlbumRef]:
        """List every album (photoset) of the user.

        Returns:
            Albums in the order Flickr returns them

        Raises:
            RemoteQueryError: If the albums cannot be listed
        """
        params: dict[str, Any] = {"per_page": PAGE_SIZE}
        if self.user_id:
            params["user_id"] = self.user_id

        albums: list[AlbumRef] = []
        page = 1
        while True:
            try:
                result = await self._call("flickr.photosets.getList", page=page, **params)
                photosets = result["photosets"]
                for item in photosets.get("photoset", []):
                    albums.append(AlbumRef(id=str(item["id"]), title=_text(item.get("title"))))
                pages = int(photosets.get("pages") or 1)
            except FlickrAPIError as e:
                raise RemoteQueryError(f"Could not list albums: {e}") from e
            except (KeyError, TypeError, ValueError) as e:
                raise RemoteQueryError(f"Unexpected album list response: {e!r}") from e

            if page >= pages:
                break
            page += 1

        logger.debug(f"Found {len(albums)} album(s)")
        return albums

    async def create_album(self, title: str, primary_photo_id: str) -> AlbumRef:
        """Create a new album around a primary photo.

        Args:
            title: Album title
            primary_photo_id: Photo that becomes the album cover

        Returns:
            The created album

        Raises:
            AlbumCreateError: If album creation fails
        """
        try:
            result = await self._call(
                "flickr.photosets.create", title=title, primary_photo_id=primary_photo_id
            )
            album_id = str(result["photoset"]["id"])
        except FlickrAPIError as e:
            raise AlbumCreateError(f"Could not create album '{title}': {e}") from e
        except (KeyError, TypeError) as e:
            raise AlbumCreateError(f"Unexpected album create response: {e!r}") from e

        logger.debug(f"Created album '{title}' with ID: {album_id}")
        return AlbumRef(id=album_id, title=title)

    async def add_photo_to_album(self, album_id: str, photo_id: str) -> None:
        """Add a photo to an album.

        A photo that is already in the album counts as added.

        Raises:
            RemoteWriteError: If the photo cannot be added
        """
        try:
            await self._call(
                "flickr.photosets.addPhoto", photoset_id=album_id, photo_id=photo_id
            )
        except FlickrAPIError as e:
            if e.code == PHOTO_ALREADY_IN_SET:
                logger.debug(f"Photo {photo_id} is already in album {album_id}")
                return
            raise RemoteWriteError(
                f"Could not add photo {photo_id} to album {album_id}: {e}"
            ) from e
        logger.debug(f"Added photo {photo_id} to album {album_id}")

    async def get_album_photo_tags(self, album_id: str) -> list[str]:
        """Collect the tags and machine tags of every photo in an album.

        Raises:
            RemoteQueryError: If the album's photos cannot be listed
        """
        tags: list[str] = []
        page = 1
        while True:
            try:
                result = await self._call(
                    "flickr.photosets.getPhotos",
                    photoset_id=album_id,
                    extras="tags,machine_tags",
                    per_page=PAGE_SIZE,
                    page=page,
                )
                photoset = result["photoset"]
                for photo in photoset.get("photo", []):
                    tags.extend(_text(photo.get("tags")).split())
                    tags.extend(_text(photo.get("machine_tags")).split())
                pages = int(photoset.get("pages") or 1)
            except FlickrAPIError as e:
                raise RemoteQueryError(f"Could not list photos of album {album_id}: {e}") from e
            except (KeyError, TypeError, ValueError) as e:
                raise RemoteQueryError(f"Unexpected album photos response: {e!r}") from e

            if page >= pages:
                break
            page += 1

        return tags

    async def upload_photo(
        self,
        content: bytes,
        title: str,
        description: str,
        tags: Iterable[str],
        *,
        is_public: bool = False,
    ) -> str:
        """Upload a photo to the user's photostream.

        Args:
            content: Image bytes
            title: Photo title
            description: Photo description
            tags: Tags, machine tags included
            is_public: Make the photo visible to everyone

        Returns:
            Photo ID

        Raises:
            UploadError: If photo upload fails
        """
        params = {
            "title": title,
            "description": description,
            "tags": " ".join(_quote_tag(tag) for tag in tags),
            "is_public": "1" if is_public else "0",
            "is_friend": "0",
            "is_family": "0",
        }
        try:
            photo_id = await self._upload(content, params)
        except FlickrAPIError as e:
            raise UploadError(f"Could not upload '{title}': {e}") from e

        logger.debug(f"Uploaded '{title}', photo ID: {photo_id}")
        return photo_id

    def _sign(self, url: str, body: str) -> dict[str, str]:
        """Return headers for a form-encoded POST signed with OAuth 1.0a."""
        _, headers, _ = self._oauth.sign(
            url,
            http_method="POST",
            body=body,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        return headers

    @retry(
        retry=retry_if_exception_type((RateLimitError, ServerError)),
        wait=wait_exponential(multiplier=1, min=1, max=60),
        stop=stop_after_attempt(5),
        reraise=True,
    )
    async def _call(self, method: str, **params: Any) -> dict[str, Any]:
        """Call a Flickr REST method.

        Args:
            method: API method name, e.g. ``flickr.photosets.getList``
            **params: Method arguments

        Returns:
            Parsed JSON response

        Raises:
            FlickrAPIError: If the call fails
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
        """
        payload = {"method": method, "format": "json", "nojsoncallback": "1"}
        payload.update({key: str(value) for key, value in params.items()})
        body = urlencode(payload)
        context = f"calling {method}"

        try:
            response = await self.client.post(
                REST_URL, content=body, headers=self._sign(REST_URL, body)
            )
        except httpx.RequestError as e:
            logger.warning(f"Network error while {context}, will retry: {e}")
            raise ServerError(f"Network error: {e}") from e

        self._raise_for_transient_status(response, context)
        result = self._parse_json_response(response, context)

        if result.get("stat") != "ok":
            self._handle_error_response(result.get("code"), result.get("message"), context)
        return result

    @retry(
        retry=retry_if_exception_type((RateLimitError, ServerError)),
        wait=wait_exponential(multiplier=1, min=1, max=60),
        stop=stop_after_attempt(5),
        reraise=True,
    )
    async def _upload(self, content: bytes, params: dict[str, str]) -> str:
        """Post photo bytes to the upload endpoint.

        The photo itself is left out of the OAuth signature, so the signature
        is computed over the form fields alone.

        Returns:
            Photo ID

        Raises:
            FlickrAPIError: If photo upload fails
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
        """
        signed = self._sign(UPLOAD_URL, urlencode(params))
        headers = {"Authorization": signed["Authorization"]}
        files = {"photo": (params["title"] or "photo", content, "application/octet-stream")}
        context = f"uploading '{params['title']}'"

        try:
            response = await self.client.post(
                UPLOAD_URL, data=params, files=files, headers=headers
            )
        except httpx.ReadTimeout as e:
            # Flickr may already have stored the photo, so this is not retried
            raise FlickrAPIError(f"Timed out waiting for upload response: {e}") from e
        except httpx.RequestError as e:
            logger.warning(f"Network error while {context}, will retry: {e}")
            raise ServerError(f"Network error: {e}") from e

        self._raise_for_transient_status(response, context)
        return self._parse_upload_response(response, context)

    def _raise_for_transient_status(self, response: httpx.Response, context: str) -> None:
        """Raise a retryable error for throttling and 5xx responses.

        Raises:
            RateLimitError: If the response is HTTP 429
            ServerError: If the response is a 5xx
        """
        if response.status_code == 429:
            logger.warning(f"Rate limit exceeded while {context}, will retry")
            raise RateLimitError(f"Flickr API rate limit exceeded: {response.text[:200]}")
        if response.status_code >= 500:
            logger.warning(f"Server error while {context}, will retry")
            raise ServerError(f"Server error {response.status_code}: {response.text[:200]}")

    def _parse_json_response(
        self, response: httpx.Response, context: str
    ) -> dict[str, Any]:
        """Parse JSON response, handling non-JSON responses gracefully.

        Args:
            response: The httpx Response object
            context: Description of what operation was attempted

        Returns:
            Parsed JSON as a dictionary

        Raises:
            FlickrAPIError: If response is not a JSON object
        """
        try:
            result = response.json()
        except ValueError:
            raise FlickrAPIError(
                f"Invalid API response while {context}: {response.text[:200]}"
            )
        if not isinstance(result, dict):
            raise FlickrAPIError(f"Invalid API response while {context}: {result!r}")
        return result

    def _parse_upload_response(self, response: httpx.Response, context: str) -> str:
        """Extract the photo ID from the upload endpoint's XML response.

        A successful response looks like
        ``<rsp stat="ok"><photoid>1234</photoid></rsp>``.

        Raises:
            FlickrAPIError: If the upload was rejected or the response is malformed
            ServerError: If Flickr reports a temporary failure
        """
        try:
            root = ET.fromstring(response.text)
        except ET.ParseError as e:
            raise FlickrAPIError(
                f"Invalid upload response while {context}: {response.text[:200]}"
            ) from e

        if root.get("stat") == "ok":
            photo_id = (root.findtext("photoid") or "").strip()
            if not photo_id:
                raise FlickrAPIError(f"Upload response has no photo ID while {context}")
            return photo_id

        err = root.find("err")
        code = err.get("code") if err is not None else None
        message = err.get("msg") if err is not None else response.text[:200]
        self._handle_error_response(code, message, context)

    def _handle_error_response(
        self, code: Any, message: str | None, context: str
    ) -> NoReturn:
        """Handle ``stat="fail"`` responses from the Flickr API.

        Args:
            code: Flickr error code
            message: Flickr error message
            context: Description of what operation failed

        Raises:
            ServerError: If Flickr reports a temporary failure
            FlickrAPIError: For other API errors
        """
        try:
            error_code = int(code) if code is not None else None
        except (TypeError, ValueError):
            error_code = None
        error_message = message or "unknown error"

        if error_code in RETRYABLE_ERROR_CODES:
            logger.warning(f"Flickr unavailable while {context}, will retry")
            raise ServerError(f"Flickr API server error: {error_message}", code=error_code)

        # Other errors - don't retry
        raise FlickrAPIError(
            f"Flickr API error {error_code} while {context}: {error_message}",
            code=error_code,
        )
