"""
Unit tests for UploadService
"""
import pytest

from app.services.upload_service import UploadError, UploadService

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def service(tmp_path):
    return UploadService(upload_dir=str(tmp_path), base_url="https://api.tinytalesearth.com/")


class TestUploadService:
    """Test image validation and storage"""

    def test_save_images(self, service, tmp_path):
        urls = service.save_images([("romper.PNG", "image/png", PNG), ("hat.jpg", "image/jpeg", b"jpeg")])

        assert len(urls) == 2
        assert all(url.startswith("https://api.tinytalesearth.com/uploads/images-") for url in urls)
        assert urls[0].endswith(".png")
        stored = sorted(path.name for path in tmp_path.iterdir())
        assert len(stored) == 2
        assert (tmp_path / urls[0].rsplit("/", 1)[1]).read_bytes() == PNG

    def test_non_image_rejected(self, service):
        with pytest.raises(UploadError, match="Only image files are allowed"):
            service.save_images([("notes.txt", "text/plain", b"hello")])

    def test_unsupported_extension_rejected(self, service):
        with pytest.raises(UploadError, match="Unsupported image type"):
            service.save_images([("photo.tiff", "image/tiff", b"data")])

    def test_too_large_rejected(self, service, monkeypatch):
        monkeypatch.setattr("app.services.upload_service.settings.MAX_UPLOAD_BYTES", 10)
        with pytest.raises(UploadError, match="File too large"):
            service.save_images([("big.png", "image/png", PNG)])

    def test_nothing_written_when_one_file_is_invalid(self, service, tmp_path):
        with pytest.raises(UploadError):
            service.save_images([("ok.png", "image/png", PNG), ("bad.exe", "application/octet-stream", b"MZ")])
        assert list(tmp_path.iterdir()) == []

    def test_empty_batch_rejected(self, service):
        with pytest.raises(UploadError, match="No files uploaded"):
            service.save_images([])

    def test_too_many_files_rejected(self, service):
        files = [(f"{i}.png", "image/png", PNG) for i in range(11)]
        with pytest.raises(UploadError, match="Too many files"):
            service.save_images(files)

    def test_unique_names(self, service):
        assert service.unique_name(".png") != service.unique_name(".png")
