"""Uploaded image storage on the local filesystem.

Files land in ``settings.upload_dir`` and are served under
``settings.upload_url_prefix``. Writes are not part of the database
transaction: callers discard the file themselves if their insert fails.
"""
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from app.core.config import settings
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

# Used when the client sends no usable filename
_EXTENSION_BY_CONTENT_TYPE = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

_CHUNK_SIZE = 64 * 1024


def upload_root() -> Path:
    """Resolve the upload directory; relative paths are taken from the cwd."""
    p = Path(settings.upload_dir)
    if not p.is_absolute():
        p = Path.cwd() / p
    return p


def _extension_for(upload: UploadFile) -> str:
    ext = os.path.splitext(upload.filename or "")[1].lower()
    if not ext:
        ext = _EXTENSION_BY_CONTENT_TYPE.get((upload.content_type or "").lower(), "")
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            "Invalid file type. Only png, jpg, gif or webp images are allowed.",
            field="image",
        )
    return ext


def is_empty_upload(upload: Optional[UploadFile]) -> bool:
    """Browsers send an empty part with no filename when no file was picked."""
    return upload is None or not (upload.filename or "").strip()


def save_image(upload: UploadFile, owner_id: str) -> str:
    """Validate and store an uploaded image; return its public URL."""
    content_type = (upload.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise ValidationError("Invalid file type. Only images are allowed.", field="image")
    ext = _extension_for(upload)

    root = upload_root()
    root.mkdir(parents=True, exist_ok=True)
    filename = f"{owner_id}-{uuid.uuid4().hex}{ext}"
    path = root / filename

    written = 0
    try:
        with path.open("wb") as out:
            while True:
                chunk = upload.file.read(_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > settings.max_upload_bytes:
                    raise ValidationError(
                        f"Image exceeds the {settings.max_upload_bytes // (1024 * 1024)} MB limit",
                        field="image",
                    )
                out.write(chunk)
    except ValidationError:
        path.unlink(missing_ok=True)
        raise
    if written == 0:
        path.unlink(missing_ok=True)
        raise ValidationError("No file uploaded", field="image")

    url = f"{settings.upload_url_prefix}/{filename}"
    logger.info("Stored upload %s (%d bytes) for %s", filename, written, owner_id)
    return url


def discard_image(url: Optional[str]) -> None:
    """Remove a file saved by ``save_image``. Failures are logged, not raised."""
    if not url or not url.startswith(settings.upload_url_prefix + "/"):
        return
    filename = url[len(settings.upload_url_prefix) + 1:]
    if "/" in filename or filename in ("", ".", ".."):
        return
    path = upload_root() / filename
    try:
        path.unlink(missing_ok=True)
        logger.info("Discarded orphaned upload %s", filename)
    except OSError as e:
        logger.warning("Could not remove orphaned upload %s: %s", filename, e)

