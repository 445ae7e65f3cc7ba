from __future__ import annotations

from typing import Optional

from plant_doctor.core.errors import FileTooLargeError, UnsupportedFormatError, ValidationError
from plant_doctor.core.models import ImageFile


SUPPORTED_IMAGE_MIME = ("image/jpeg", "image/png", "image/webp")
MAX_IMAGE_BYTES = 5 * 1024 * 1024


def validate_image(file: ImageFile, *, max_bytes: int = MAX_IMAGE_BYTES) -> Optional[ValidationError]:
    """
    Check a selected file against the upload policy.

    Rules run in order and the first failure wins:
    1) MIME type must be JPEG, PNG or WebP
    2) size must not exceed max_bytes (exactly max_bytes is accepted)

    Returns the error instead of raising so callers decide how to surface it.
    """
    if file.mime_type not in SUPPORTED_IMAGE_MIME:
        return UnsupportedFormatError(file.mime_type)

    if file.size > max_bytes:
        return FileTooLargeError(size=file.size, limit=max_bytes)

    return None
