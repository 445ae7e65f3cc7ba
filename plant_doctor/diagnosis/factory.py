from __future__ import annotations

from plant_doctor.config import Settings, settings as default_settings
from plant_doctor.diagnosis.base import DiagnosisClient, DiagnosisClientConfig
from plant_doctor.diagnosis.mock import MockDiagnosisClient


def create_diagnosis_client(s: Settings | None = None) -> DiagnosisClient:
    """
    Factory for diagnosis clients.

    The Bedrock client is imported lazily so the app starts in mock mode
    without touching boto3.
    """
    s = s or default_settings
    provider = (s.diagnosis_provider or "mock").strip().lower()

    if provider == "mock":
        return MockDiagnosisClient()

    if provider == "bedrock":
        from plant_doctor.diagnosis.bedrock import BedrockDiagnosisClient

        return BedrockDiagnosisClient(DiagnosisClientConfig.from_settings(s))

    raise ValueError(f"Unsupported diagnosis provider: {provider}")
