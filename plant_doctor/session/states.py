from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from plant_doctor.core.errors import PlantDoctorError
from plant_doctor.core.models import AnalysisResult, UploadedImage


@dataclass(frozen=True)
class Idle:
    status: ClassVar[str] = "idle"


@dataclass(frozen=True)
class ImageSelected:
    status: ClassVar[str] = "image_selected"
    image: UploadedImage


@dataclass(frozen=True)
class Analyzing:
    status: ClassVar[str] = "analyzing"
    image: UploadedImage


@dataclass(frozen=True)
class Completed:
    status: ClassVar[str] = "completed"
    image: UploadedImage
    result: AnalysisResult


@dataclass(frozen=True)
class Failed:
    status: ClassVar[str] = "failed"
    image: UploadedImage
    error: PlantDoctorError

    @property
    def error_message(self) -> str:
        return self.error.user_message


AnalysisState = Union[Idle, ImageSelected, Analyzing, Completed, Failed]


def image_of(state: AnalysisState) -> Optional[UploadedImage]:
    return getattr(state, "image", None)
