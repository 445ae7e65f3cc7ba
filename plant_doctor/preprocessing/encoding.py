from __future__ import annotations

import base64
import logging
from typing import Tuple

from plant_doctor.core.errors import ReadError
from plant_doctor.core.models import ImageFile, PreviewHandle

logger = logging.getLogger(__name__)

_DATA_URI_SCHEME = "data:"
_BASE64_MARKER = ";base64,"


async def encode_to_transport_text(file: ImageFile) -> str:
    """
    Read the file and return a data URI: data:<mime>;base64,<payload>.

    The read is the only suspension point before the remote call.
    """
    try:
        data = await file.read_bytes()
    except Exception as e:
        logger.warning("encode_read_failed name=%s error=%s", file.name, type(e).__name__)
        raise ReadError(f"Failed to read image '{file.name}': {e}") from e

    payload = base64.b64encode(data).decode("ascii")
    return f"{_DATA_URI_SCHEME}{file.mime_type}{_BASE64_MARKER}{payload}"


def split_data_uri(transport_text: str) -> Tuple[str, str]:
    """
    Split a base64 data URI into (media_type, payload).

    Raises ValueError when the text is not a base64 data URI.
    """
    if not transport_text or not transport_text.startswith(_DATA_URI_SCHEME):
        raise ValueError("Transport text is not a data URI")

    header, sep, payload = transport_text.partition(",")
    if not sep or not header.endswith(";base64"):
        raise ValueError("Transport text is not base64-encoded")

    media_type = header[len(_DATA_URI_SCHEME):-len(";base64")]
    return media_type, payload


def create_preview_handle(file: ImageFile) -> PreviewHandle:
    """Caller owns the returned handle and must release it."""
    return PreviewHandle(file)
