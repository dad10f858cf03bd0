from __future__ import annotations

import io

import pytest
from werkzeug.datastructures import FileStorage

import storage

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _upload(data: bytes = PNG_BYTES, filename: str = "photo.png", content_type: str = "image/png") -> FileStorage:
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=content_type)


def test_save_image_without_file_returns_none():
    assert storage.save_image(None) is None
    assert storage.save_image(_upload(filename="")) is None


def test_local_save_and_delete():
    url = storage.save_image(_upload(), mode="local")
    path = storage.UPLOAD_DIR / url[len(storage.UPLOAD_URL_PREFIX):]
    assert path.read_bytes() == PNG_BYTES

    storage.delete_local_image(url)
    assert not path.exists()
    storage.delete_local_image(url)
    storage.delete_local_image("https://cdn.example.com/a.png")


def test_rejects_empty_and_oversized_files(monkeypatch):
    with pytest.raises(ValueError):
        storage.save_image(_upload(data=b""))

    monkeypatch.setattr(storage, "MAX_FILE_SIZE", 8)
    with pytest.raises(ValueError):
        storage.save_image(_upload())


def test_cloud_mode_uploads_to_cloudinary(monkeypatch):
    calls = []

    def fake_upload(data, **options):
        calls.append((data, options))
        return {"secure_url": "https://res.cloudinary.com/demo/image/upload/p.png"}

    monkeypatch.setattr(storage.cloudinary.uploader, "upload", fake_upload)
    url = storage.save_image(_upload(), mode="cloud")

    assert url == "https://res.cloudinary.com/demo/image/upload/p.png"
    assert calls == [(PNG_BYTES, {"folder": "products", "resource_type": "image"})]


def test_cloud_failures_raise_storage_error(monkeypatch):
    def failing_upload(data, **options):
        raise RuntimeError("network down")

    monkeypatch.setattr(storage.cloudinary.uploader, "upload", failing_upload)
    with pytest.raises(storage.StorageError):
        storage.save_image(_upload(), mode="cloud")
