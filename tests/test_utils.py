"""Tests for utility functions."""

from pathlib import Path

import pytest

from flickr_album_uploader.utils import load_sources, normalize_source_url, title_from_url


class TestNormalizeSourceUrl:
    """Test share link rewriting."""

    def test_dropbox_preview_link(self) -> None:
        assert (
            normalize_source_url("https://www.dropbox.com/s/abc/photo.jpg?dl=0")
            == "https://www.dropbox.com/s/abc/photo.jpg?dl=1"
        )

    def test_dropbox_link_keeps_other_params(self) -> None:
        url = "https://www.dropbox.com/scl/fi/xyz/photo.jpg?rlkey=k1&raw=1"
        assert normalize_source_url(url) == (
            "https://www.dropbox.com/scl/fi/xyz/photo.jpg?rlkey=k1&dl=1"
        )

    def test_dropbox_link_without_query(self) -> None:
        assert (
            normalize_source_url("https://dropbox.com/s/abc/photo.jpg")
            == "https://dropbox.com/s/abc/photo.jpg?dl=1"
        )

    def test_other_urls_unchanged(self) -> None:
        url = "https://example.com/photo.jpg?dl=0"
        assert normalize_source_url(url) == url

    def test_whitespace_stripped(self) -> None:
        assert normalize_source_url("  https://example.com/a.jpg\n") == (
            "https://example.com/a.jpg"
        )


class TestTitleFromUrl:
    """Test default photo titles."""

    def test_file_stem(self) -> None:
        assert title_from_url("https://x/a.jpg") == "a"

    def test_percent_encoded_name(self) -> None:
        assert (
            title_from_url("https://www.dropbox.com/s/abc/Beach%20Day.jpeg?dl=0")
            == "Beach Day"
        )

    def test_no_path_falls_back_to_host(self) -> None:
        assert title_from_url("https://example.com") == "example.com"


class TestLoadSources:
    """Test reading source lists."""

    def test_load_sources(self, tmp_path: Path) -> None:
        path = tmp_path / "sources.txt"
        path.write_text(
            "# holiday photos\nhttps://x/a.jpg\n\n  https://x/b.jpg  \n",
            encoding="utf-8",
        )

        sources = load_sources(path, tags=["holiday"])

        assert [s.url for s in sources] == ["https://x/a.jpg", "https://x/b.jpg"]
        assert all(s.tags == {"holiday"} for s in sources)

    def test_load_sources_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_sources(tmp_path / "missing.txt")
