"""Flickr Album Uploader - Upload photos from URLs into Flickr albums, idempotently."""

__version__ = "0.1.0"

from flickr_album_uploader.api_client import FlickrAPIClient
from flickr_album_uploader.exceptions import (
    AlbumCreateError,
    FetchError,
    PhotoStoreError,
    RemoteQueryError,
    RemoteWriteError,
    UploadError,
)
from flickr_album_uploader.fetcher import HttpFetcher
from flickr_album_uploader.models import (
    AlbumRef,
    ErrorKind,
    PhotoSource,
    ReconcileOutcome,
    ReconciliationPlan,
    UploadResult,
    UploadStatus,
)
from flickr_album_uploader.reconciler import AlbumReconciler, ReconcilerConfig

__all__ = [
    "FlickrAPIClient",
    "HttpFetcher",
    "AlbumReconciler",
    "ReconcilerConfig",
    "AlbumRef",
    "ErrorKind",
    "PhotoSource",
    "ReconcileOutcome",
    "ReconciliationPlan",
    "UploadResult",
    "UploadStatus",
    "PhotoStoreError",
    "RemoteQueryError",
    "RemoteWriteError",
    "AlbumCreateError",
    "UploadError",
    "FetchError",
]
