import logging
from typing import Optional

from fastapi import FastAPI

from plant_doctor.logging import configure_logging
from plant_doctor.config import settings
from plant_doctor.middleware.request_id import RequestIdMiddleware
from plant_doctor.api.error_handlers import register_error_handlers
from plant_doctor.diagnosis.base import DiagnosisClient
from plant_doctor.diagnosis.factory import create_diagnosis_client
from plant_doctor.session.registry import SessionRegistry

from plant_doctor.api.health import router as health_router
from plant_doctor.api.routes_sessions import router as sessions_router
from plant_doctor.observability.metrics_route import router as metrics_router


def create_app(diagnosis_client: Optional[DiagnosisClient] = None) -> FastAPI:
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI(title=settings.app_name)
    app.add_middleware(RequestIdMiddleware)
    register_error_handlers(app)

    client = diagnosis_client or create_diagnosis_client(settings)
    app.state.sessions = SessionRegistry(
        client,
        max_image_bytes=settings.max_image_bytes,
        max_sessions=settings.max_sessions,
        ttl_seconds=settings.session_ttl_seconds,
    )

    app.include_router(health_router)
    app.include_router(sessions_router)
    app.include_router(metrics_router)

    logger.info("App initialized provider=%s model=%s", settings.diagnosis_provider, client.model_id)
    return app


app = create_app()
