from __future__ import annotations

import mimetypes
import os
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol, Tuple

import anyio


# -----------------------------
# Files
# -----------------------------

@dataclass(frozen=True)
class ImageFile:
    """
    A user-selected file: metadata plus a way to read its bytes.

    The bytes are not assumed to be resident in memory, so reading is async
    and may fail (deleted path, closed upload, ...).
    """
    name: str
    mime_type: str
    size: int
    loader: Callable[[], Awaitable[bytes]] = field(repr=False, compare=False)

    async def read_bytes(self) -> bytes:
        return await self.loader()

    @classmethod
    def from_bytes(cls, name: str, mime_type: str, data: bytes) -> "ImageFile":
        async def _load() -> bytes:
            return data

        return cls(name=name, mime_type=mime_type, size=len(data), loader=_load)

    @classmethod
    def from_path(cls, path: str, mime_type: Optional[str] = None) -> "ImageFile":
        p = anyio.Path(path)
        guessed, _ = mimetypes.guess_type(str(path))
        size = os.path.getsize(path)

        async def _load() -> bytes:
            return await p.read_bytes()

        return cls(name=p.name, mime_type=mime_type or guessed or "application/octet-stream", size=size, loader=_load)


def format_file_size(size: int) -> str:
    """Human-readable size label shown next to the selected image."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


# -----------------------------
# Preview handles
# -----------------------------

class ReleasableHandle(Protocol):
    """Opaque display handle owned by whoever created it; must be released exactly once."""
    handle_id: str

    @property
    def released(self) -> bool:
        ...

    def release(self) -> None:
        ...


class PreviewHandle:
    """
    Lets the presentation layer render the selected image without re-encoding it.

    Server-side there is no object URL to revoke, so releasing just drops the
    reference to the file. After release the handle can no longer be opened.
    """

    def __init__(self, file: ImageFile):
        self.handle_id = uuid.uuid4().hex
        self.mime_type = file.mime_type
        self._file: Optional[ImageFile] = file

    @property
    def released(self) -> bool:
        return self._file is None

    def release(self) -> None:
        self._file = None

    async def open(self) -> bytes:
        if self._file is None:
            raise LookupError(f"Preview handle {self.handle_id} was released")
        return await self._file.read_bytes()


@dataclass(frozen=True)
class UploadedImage:
    """A validated file together with its preview handle. Replaced, never mutated."""
    file: ImageFile
    preview: ReleasableHandle


# -----------------------------
# Diagnosis result
# -----------------------------

HEALTHY_CONDITION = "Healthy"


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, value: object) -> Optional["Severity"]:
        if not isinstance(value, str):
            return None
        wanted = value.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None


@dataclass(frozen=True)
class AnalysisResult:
    """
    Structured diagnosis. Every field is optional because the model may omit any
    of them; recommendations keep the model's order.
    """
    condition: Optional[str] = None
    severity: Optional[Severity] = None
    confidence: Optional[float] = None
    recommendations: Tuple[str, ...] = ()

    @property
    def is_healthy(self) -> bool:
        return (self.condition or "").strip().lower() == HEALTHY_CONDITION.lower()
