"""Tests for domains.upload.services.processor module."""

from unittest.mock import Mock

import pytest

from domains.upload.config import CompressionConfig
from domains.upload.models import UploadCandidate
from domains.upload.services.processor import FileProcessor, canonical_name


class TestCanonicalName:
    """Tests for canonical_name function."""

    @pytest.mark.parametrize("name,expected", [
        ("IMG_001.HEIC", "IMG_001.jpg"),
        ("beach.png", "beach.jpg"),
        ("noextension", "noextension.jpg"),
        (".hidden", ".hidden.jpg"),
        (None, "image.jpg"),
        ("", "image.jpg"),
    ])
    def test_names(self, name, expected):
        """Test extension replacement."""
        assert canonical_name(name) == expected


class TestFileProcessor:
    """Tests for FileProcessor.process."""

    def test_compresses_large_image(self, image_factory):
        """Test 3000x2000 photo is fitted into 1920x1080 and renamed."""
        content = image_factory(3000, 2000, fmt="PNG")
        file = UploadCandidate(content, "image/png", name="beach.png")

        processed = FileProcessor().process(
            file, CompressionConfig(enabled=True, quality=0.8, max_width=1920, max_height=1080)
        )

        assert processed.compressed is True
        assert processed.width <= 1920
        assert processed.height <= 1080
        assert processed.name.endswith(".jpg")
        assert processed.mime_type == "image/jpeg"
        assert processed.size == len(processed.content)

    def test_non_image_passes_through(self):
        """Test non-images are never transformed."""
        transformer = Mock()
        file = UploadCandidate(b"hello", "text/plain", name="note.txt")

        processed = FileProcessor(transformer).process(file)

        transformer.resize.assert_not_called()
        assert processed.content == b"hello"
        assert processed.name == "note.txt"
        assert processed.compressed is False
        assert processed.width is None

    def test_size_is_measured_not_declared(self):
        """Test the stored size matches the bytes, whatever the caller claimed."""
        processed = FileProcessor(Mock()).process(UploadCandidate(b"abc", "text/plain", size=999))

        assert processed.size == 3

    def test_disabled_compression_passes_through(self, small_jpeg):
        """Test compression can be switched off."""
        file = UploadCandidate(small_jpeg, "image/jpeg", name="a.jpeg")

        processed = FileProcessor().process(file, CompressionConfig(enabled=False))

        assert processed.content == small_jpeg
        assert processed.name == "a.jpeg"
        assert processed.compressed is False

    def test_transform_failure_falls_back_to_original(self, caplog):
        """Test a broken image is uploaded unmodified."""
        file = UploadCandidate(b"corrupt", "image/jpeg", name="broken.jpg")

        processed = FileProcessor().process(file)

        assert processed.content == b"corrupt"
        assert processed.mime_type == "image/jpeg"
        assert processed.compressed is False
        assert "using original" in caplog.text

    def test_defaults_for_missing_name_and_type(self):
        """Test nameless, typeless files."""
        processed = FileProcessor().process(UploadCandidate(b"\x00\x01", None))

        assert processed.name == "file"
        assert processed.mime_type == "application/octet-stream"
        assert processed.size == 2

    def test_nameless_image_becomes_image_jpg(self, small_jpeg):
        """Test default name for compressed images."""
        processed = FileProcessor().process(UploadCandidate(small_jpeg, "image/jpeg"))

        assert processed.name == "image.jpg"

    def test_reads_from_path(self, tmp_path, small_jpeg):
        """Test path content is loaded before processing."""
        path = tmp_path / "photo.jpeg"
        path.write_bytes(small_jpeg)

        processed = FileProcessor().process(UploadCandidate(str(path), "image/jpeg", name="photo.jpeg"))

        assert processed.compressed is True
        assert (processed.width, processed.height) == (64, 48)

    def test_unreadable_path_raises(self, tmp_path):
        """Test missing files surface as OSError."""
        with pytest.raises(OSError):
            FileProcessor().process(UploadCandidate(str(tmp_path / "gone.jpg"), "image/jpeg"))
