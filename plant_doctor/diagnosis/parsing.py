from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from plant_doctor.core.errors import ParseError
from plant_doctor.core.models import AnalysisResult
from plant_doctor.diagnosis.schema import DiagnosisPayload


_DECODER = json.JSONDecoder()


def _first_json_object(text: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Scan every "{" left to right and return the first one that decodes as a
    complete JSON object, with its source span. Text after the object (prose,
    stray braces) is ignored. The last decode error is returned when nothing decodes.
    """
    last_error: Optional[str] = None
    start = text.find("{")
    while start != -1:
        try:
            obj, end = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError as e:
            last_error = str(e)
        else:
            if isinstance(obj, dict):
                return obj, text[start:end]
        start = text.find("{", start + 1)
    return None, last_error


def extract_json_object(text: str) -> Optional[str]:
    if not text:
        return None
    obj, span = _first_json_object(text)
    return span if obj is not None else None


def parse_diagnosis(text: str) -> AnalysisResult:
    """
    Turn the model's free-form reply into an AnalysisResult.

    Never invents a placeholder diagnosis: anything unparseable raises
    ParseError carrying the raw reply.
    """
    if not text or "{" not in text:
        raise ParseError("No diagnosis found in model output", raw_text=text)

    data, detail = _first_json_object(text)
    if data is None:
        raise ParseError(f"Model output is not valid JSON: {detail}", raw_text=text)

    try:
        payload = DiagnosisPayload.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"JSON does not match diagnosis schema: {e}", raw_text=text) from e

    return AnalysisResult(
        condition=payload.resolved_condition,
        severity=payload.severity,
        confidence=payload.confidence,
        recommendations=tuple(payload.recommendations),
    )
