from __future__ import annotations

import json

from plant_doctor.core.errors import ReadError
from plant_doctor.core.models import AnalysisResult
from plant_doctor.diagnosis.parsing import parse_diagnosis
from plant_doctor.preprocessing.encoding import split_data_uri

_MOCK_REPLY = {
    "disease": "Healthy",
    "severity": "Low",
    "confidence": 20,
    "recommendations": [
        "Enable the bedrock provider for real diagnoses",
        "Keep watering on a regular schedule",
        "Check leaves weekly for spots or discoloration",
    ],
}


class MockDiagnosisClient:
    """Offline client for dev mode; the reply goes through the real parser."""

    def __init__(self, reply_text: str | None = None):
        self.model_id = "mock-diagnosis"
        self._reply_text = reply_text if reply_text is not None else json.dumps(_MOCK_REPLY)

    async def diagnose(self, transport_text: str) -> AnalysisResult:
        # Same input contract as the real client.
        try:
            split_data_uri(transport_text)
        except ValueError as e:
            raise ReadError(f"Image payload is not a base64 data URI: {e}") from e
        return parse_diagnosis(f"Here is my assessment:\n{self._reply_text}")
