from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from plant_doctor.core.models import AnalysisResult, UploadedImage, format_file_size
from plant_doctor.session.analysis_session import AnalysisSession
from plant_doctor.session.states import Completed, Failed, image_of


# ---------
# Parts
# ---------

class ImageInfo(BaseModel):
    name: str
    mime_type: str
    size: int
    size_label: str
    preview_url: str


class ResultInfo(BaseModel):
    condition: Optional[str] = None
    severity: Optional[Literal["Low", "Medium", "High"]] = None
    confidence: Optional[float] = None
    recommendations: List[str] = Field(default_factory=list)
    is_healthy: bool = False


class ErrorBody(BaseModel):
    code: str
    message: str
    request_id: Optional[str] = None


# ---------
# Session state
# ---------

class SessionStateResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_id: str
    status: Literal["idle", "image_selected", "analyzing", "completed", "failed"]
    image: Optional[ImageInfo] = None
    result: Optional[ResultInfo] = None
    error: Optional[ErrorBody] = None

    @classmethod
    def from_session(cls, session: AnalysisSession) -> "SessionStateResponse":
        state = session.state
        image = image_of(state)

        result = None
        if isinstance(state, Completed):
            result = _result_info(state.result)

        error = None
        if isinstance(state, Failed):
            error = ErrorBody(code=state.error.code, message=state.error_message)

        return cls(
            session_id=session.session_id,
            status=state.status,
            image=_image_info(session.session_id, image) if image is not None else None,
            result=result,
            error=error,
        )


def _image_info(session_id: str, image: UploadedImage) -> ImageInfo:
    f = image.file
    return ImageInfo(
        name=f.name,
        mime_type=f.mime_type,
        size=f.size,
        size_label=format_file_size(f.size),
        preview_url=f"/sessions/{session_id}/preview",
    )


def _result_info(result: AnalysisResult) -> ResultInfo:
    return ResultInfo(
        condition=result.condition,
        severity=result.severity.value if result.severity is not None else None,
        confidence=result.confidence,
        recommendations=list(result.recommendations),
        is_healthy=result.is_healthy,
    )


# ---------
# Error payload
# ---------

class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    error: ErrorBody
