"""Tests for data models."""

import pytest

from flickr_album_uploader.models import (
    AlbumRef,
    ErrorKind,
    PhotoSource,
    ReconcileOutcome,
    ReconciliationPlan,
    UploadResult,
    UploadStatus,
)


class TestPhotoSource:
    """Test PhotoSource data model."""

    def test_tags_are_frozen(self) -> None:
        source = PhotoSource(url="https://x/a.jpg", tags=["beach", "beach", "sun"])
        assert source.tags == frozenset({"beach", "sun"})

    def test_empty_url(self) -> None:
        with pytest.raises(ValueError, match="URL cannot be empty"):
            PhotoSource(url="")


class TestAlbumRef:
    """Test AlbumRef title matching."""

    def test_matches_ignores_case(self) -> None:
        album = AlbumRef(id="1", title="Trip –1")
        assert album.matches("TRIP –1")
        assert not album.matches("Trip –2")
        assert not album.matches("Trip")


class TestUploadResult:
    """Test UploadResult validation."""

    def test_uploaded_requires_photo_id(self) -> None:
        with pytest.raises(ValueError, match="photo_id"):
            UploadResult(source=PhotoSource(url="u"), status=UploadStatus.UPLOADED)

    def test_failed_requires_error(self) -> None:
        with pytest.raises(ValueError, match="error_kind"):
            UploadResult(source=PhotoSource(url="u"), status=UploadStatus.FAILED)

    def test_skipped_is_success(self) -> None:
        result = UploadResult(source=PhotoSource(url="u"), status=UploadStatus.SKIPPED)
        assert result.success


class TestPlanAndOutcome:
    """Test ReconciliationPlan and ReconcileOutcome."""

    def test_plan_rejects_blank_title(self) -> None:
        with pytest.raises(ValueError, match="title cannot be empty"):
            ReconciliationPlan(album_title="  ", sources=())

    def test_outcome_counts(self) -> None:
        source = PhotoSource(url="u")
        outcome = ReconcileOutcome(
            album_id="1",
            results=[
                UploadResult(source=source, status=UploadStatus.UPLOADED, photo_id="p1"),
                UploadResult(
                    source=source,
                    status=UploadStatus.UPLOADED,
                    photo_id="p2",
                    warning="Not added to album",
                ),
                UploadResult(source=source, status=UploadStatus.SKIPPED),
                UploadResult(
                    source=source,
                    status=UploadStatus.FAILED,
                    error_kind=ErrorKind.FETCH,
                    error_message="HTTP 404",
                ),
            ],
        )

        assert (outcome.uploaded, outcome.skipped, outcome.failed) == (2, 1, 1)
        assert [r.photo_id for r in outcome.warnings] == ["p2"]
