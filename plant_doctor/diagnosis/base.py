from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from plant_doctor.core.models import AnalysisResult


@dataclass(frozen=True)
class DiagnosisClientConfig:
    """
    Everything the remote client needs, passed in explicitly.

    Credentials are optional: when unset, boto3 resolves them through the
    default AWS chain (env vars, shared config, instance role).
    """
    region: str
    model_id: str
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    max_tokens: int = 1000
    anthropic_version: str = "bedrock-2023-05-31"
    timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls, s) -> "DiagnosisClientConfig":
        return cls(
            region=s.aws_region,
            model_id=s.bedrock_model_id,
            access_key_id=s.aws_access_key_id,
            secret_access_key=s.aws_secret_access_key,
            session_token=s.aws_session_token,
            max_tokens=s.bedrock_max_tokens,
            anthropic_version=s.bedrock_anthropic_version,
            timeout_seconds=s.diagnosis_timeout_seconds,
        )


class DiagnosisClient(Protocol):
    """
    "Given an image, return a diagnosis."

    Implementations:
    - BedrockDiagnosisClient (hosted model)
    - MockDiagnosisClient (dev / tests)
    """
    @property
    def model_id(self) -> str:
        ...

    async def diagnose(self, transport_text: str) -> AnalysisResult:
        ...
