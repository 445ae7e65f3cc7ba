from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from plant_doctor.core.models import Severity


class DiagnosisPayload(BaseModel):
    """
    The partially-known JSON object the model replies with.

    Only the recognized keys are read; anything else is dropped. Values that
    are present but unusable (unknown severity, confidence out of range) become
    None instead of failing the whole diagnosis.
    """
    model_config = ConfigDict(extra="ignore")

    disease: Optional[str] = None
    condition: Optional[str] = None
    pest: Optional[str] = None
    severity: Optional[Severity] = None
    confidence: Optional[float] = Field(default=None)
    recommendations: List[str] = Field(default_factory=list)

    @field_validator("disease", "condition", "pest", mode="before")
    @classmethod
    def _text_or_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, v: Any) -> Optional[Severity]:
        return Severity.parse(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> Optional[float]:
        if v is None or isinstance(v, bool):
            return None
        try:
            value = float(str(v).strip().rstrip("%"))
        except ValueError:
            return None
        if not 0.0 <= value <= 100.0:
            return None
        return value

    @field_validator("recommendations", mode="before")
    @classmethod
    def _recommendations(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, list):
            return []
        return [str(item).strip() for item in v if item is not None and str(item).strip()]

    @property
    def resolved_condition(self) -> Optional[str]:
        return self.disease or self.condition or self.pest
