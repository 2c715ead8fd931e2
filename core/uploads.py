# core/uploads.py
"""
Image upload handling.

Only one file field is inspected. Files whose MIME type is not on the
allow-list are dropped without an error; callers that need to know why can
look at the returned ``UploadResult``.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from werkzeug.datastructures import FileStorage

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_MIMETYPES = frozenset({'image/png', 'image/jpg', 'image/jpeg'})


class UploadStatus(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    MISSING = "missing"


@dataclass
class UploadResult:
    """Outcome of inspecting the upload field"""
    status: UploadStatus
    filename: Optional[str] = None
    original_name: Optional[str] = None
    mimetype: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status is UploadStatus.ACCEPTED


def is_allowed_image(mimetype: Optional[str], allowed=ALLOWED_IMAGE_MIMETYPES) -> bool:
    return mimetype in allowed


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp in the ``2024-01-31T09:15:02.123Z`` form"""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.') + f"{now.microsecond // 1000:03d}Z"


def build_image_filename(original_name: str, now: Optional[datetime] = None) -> str:
    """Stored name: ``<ISO timestamp>-<original name>``"""
    # keep the client's name, minus any directory part it sent
    name = Path(original_name.replace('\\', '/').replace('\x00', '')).name
    if name in ('', '.', '..'):
        name = 'upload'
    return f"{iso_timestamp(now)}-{name}"


def handle_image_upload(files, directory, field='image',
                        allowed=ALLOWED_IMAGE_MIMETYPES) -> UploadResult:
    """
    Persist the file posted under ``field`` if it is an allowed image.

    Args:
        files: the request's ``files`` multidict
        directory: destination folder, created on demand

    Returns:
        UploadResult; ``REJECTED`` and ``MISSING`` leave nothing on disk
    """
    storage: Optional[FileStorage] = files.get(field)
    if storage is None or not storage.filename:
        return UploadResult(UploadStatus.MISSING)

    if not is_allowed_image(storage.mimetype, allowed):
        logger.info(f"Dropped upload {storage.filename!r} with type {storage.mimetype}")
        return UploadResult(
            UploadStatus.REJECTED,
            original_name=storage.filename,
            mimetype=storage.mimetype
        )

    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    filename = build_image_filename(storage.filename)
    storage.save(os.fspath(target_dir / filename))
    logger.debug(f"Stored upload {storage.filename!r} as {filename}")

    return UploadResult(
        UploadStatus.ACCEPTED,
        filename=filename,
        original_name=storage.filename,
        mimetype=storage.mimetype
    )


def delete_image(filename: Optional[str], directory) -> bool:
    """Remove a stored image; a missing file is logged, not raised"""
    if not filename:
        return False
    path = Path(directory) / Path(filename).name
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning(f"Image {filename} already gone from {directory}")
        return False
    return True
