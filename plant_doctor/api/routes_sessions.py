import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile

from plant_doctor.api.schemas_session import ErrorResponse, SessionStateResponse
from plant_doctor.core.models import ImageFile, PreviewHandle
from plant_doctor.session.registry import SessionRegistry
from plant_doctor.session.states import image_of

# Handlers are all async so session state is only touched from the event loop.
router = APIRouter(
    prefix="/sessions",
    tags=["sessions"],
    responses={
        404: {"model": ErrorResponse, "description": "Unknown session"},
        422: {"model": ErrorResponse, "description": "Malformed request"},
    },
)

logger = logging.getLogger(__name__)


async def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


@router.post("", response_model=SessionStateResponse, status_code=201)
async def create_session(registry: SessionRegistry = Depends(get_registry)) -> SessionStateResponse:
    session = registry.create()
    return SessionStateResponse.from_session(session)


@router.get("/{session_id}", response_model=SessionStateResponse)
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionStateResponse:
    return SessionStateResponse.from_session(registry.get(session_id))


@router.post(
    "/{session_id}/image",
    response_model=SessionStateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Unsupported image format"},
        409: {"model": ErrorResponse, "description": "Analysis in progress"},
        413: {"model": ErrorResponse, "description": "Image too large"},
    },
)
async def select_image(
    session_id: str,
    file: UploadFile = File(...),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionStateResponse:
    session = registry.get(session_id)

    # The upload is closed once the request ends, so keep the bytes.
    data = await file.read()
    image = ImageFile.from_bytes(
        name=file.filename or "upload",
        mime_type=file.content_type or "application/octet-stream",
        data=data,
    )

    session.select_image(image)
    logger.info(
        "image_selected session_id=%s name=%s mime=%s size=%d",
        session_id, image.name, image.mime_type, image.size,
    )
    return SessionStateResponse.from_session(session)


@router.post(
    "/{session_id}/analyze",
    response_model=SessionStateResponse,
    responses={409: {"model": ErrorResponse, "description": "No image selected or analysis already completed"}},
)
async def start_analysis(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionStateResponse:
    session = registry.get(session_id)
    await session.start_analysis()
    return SessionStateResponse.from_session(session)


@router.post(
    "/{session_id}/reset",
    response_model=SessionStateResponse,
    responses={409: {"model": ErrorResponse, "description": "Analysis in progress"}},
)
async def reset_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionStateResponse:
    session = registry.get(session_id)
    session.reset()
    return SessionStateResponse.from_session(session)


@router.get("/{session_id}/preview")
async def get_preview(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> Response:
    image = image_of(registry.get(session_id).state)
    if image is None or not isinstance(image.preview, PreviewHandle) or image.preview.released:
        raise HTTPException(
            status_code=404,
            detail={"code": "no_preview", "message": "No image selected"},
        )

    content = await image.preview.open()
    return Response(content=content, media_type=image.preview.mime_type)


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> Response:
    registry.discard(session_id)
    return Response(status_code=204)
