"""Product image storage on local disk or Cloudinary."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional
from uuid import uuid4

import cloudinary
import cloudinary.uploader
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

UPLOAD_MODE = "cloud" if os.getenv("UPLOAD_MODE", "local").strip().lower() == "cloud" else "local"
UPLOAD_DIR = Path(os.getenv("UPLOADS_DIR") or Path(__file__).with_name("uploads"))
UPLOAD_URL_PREFIX = "/uploads/"
CLOUDINARY_FOLDER = "products"
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def _max_file_size() -> int:
    try:
        return int(os.getenv("MAX_FILE_SIZE", "5242880"))
    except ValueError:
        return 5_242_880


MAX_FILE_SIZE = _max_file_size()

cloudinary.config(
    cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
    api_key=os.getenv("CLOUDINARY_API_KEY"),
    api_secret=os.getenv("CLOUDINARY_API_SECRET"),
    secure=True,
)


class StorageError(Exception):
    """Raised when the storage backend fails to persist an upload."""


def _read_validated(file_storage: FileStorage) -> bytes:
    mimetype = (file_storage.mimetype or "").lower()
    if mimetype not in ALLOWED_IMAGE_TYPES:
        raise ValueError("Only image files (jpeg, png, webp, gif) are allowed")
    data = file_storage.read()
    if not data:
        raise ValueError("Uploaded file is empty")
    if len(data) > MAX_FILE_SIZE:
        raise ValueError(f"Image must be at most {MAX_FILE_SIZE // (1024 * 1024) or 1} MB")
    return data


def _save_local(file_storage: FileStorage, data: bytes) -> str:
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    # The client filename never decides the served content type.
    extension = ALLOWED_IMAGE_TYPES[(file_storage.mimetype or "").lower()]
    unique_name = f"{uuid4().hex}{extension}"
    (UPLOAD_DIR / unique_name).write_bytes(data)
    return f"{UPLOAD_URL_PREFIX}{unique_name}"


def _save_cloud(data: bytes) -> str:
    try:
        result = cloudinary.uploader.upload(data, folder=CLOUDINARY_FOLDER, resource_type="image")
    except Exception as exc:
        logger.error("Cloudinary upload failed: %s", exc)
        raise StorageError("Image upload failed") from exc
    return str(result["secure_url"])


def save_image(file_storage: Optional[FileStorage], *, mode: Optional[str] = None) -> Optional[str]:
    """Persist an uploaded image and return its public URL.

    Returns None when no file was sent. Raises ValueError for files that are
    not acceptable images and StorageError when the backend fails.
    """

    if not file_storage or not file_storage.filename:
        return None
    data = _read_validated(file_storage)
    if (mode or UPLOAD_MODE) == "cloud":
        return _save_cloud(data)
    try:
        return _save_local(file_storage, data)
    except OSError as exc:
        logger.error("Could not write upload to %s: %s", UPLOAD_DIR, exc)
        raise StorageError("Image upload failed") from exc


def delete_local_image(url: Optional[str]) -> None:
    """Remove a locally stored upload; remote URLs are left alone."""

    if not url or not url.startswith(UPLOAD_URL_PREFIX):
        return
    name = secure_filename(url[len(UPLOAD_URL_PREFIX):])
    if not name:
        return
    try:
        (UPLOAD_DIR / name).unlink()
    except FileNotFoundError:
        return
