from __future__ import annotations

import json
from typing import Any, Dict

OUTPUT_SCHEMA_HINT = {
    "disease": "name of the disease, pest or issue, or \"Healthy\"",
    "severity": "Low | Medium | High",
    "confidence": "number between 0 and 100",
    "recommendations": ["3-5 short imperative treatment or care steps"],
}

DIAGNOSIS_INSTRUCTION = (
    "Analyze this plant image for diseases, pests, or health issues.\n"
    "Respond with a JSON object containing:\n"
    "- disease: name of the disease/issue (if any)\n"
    '- severity: "Low", "Medium", or "High"\n'
    "- confidence: number between 0-100\n"
    "- recommendations: array of short imperative treatment suggestions (3-5 items)\n\n"
    'If the plant appears healthy, set disease to "Healthy" and provide care recommendations.\n'
    f"Schema example: {json.dumps(OUTPUT_SCHEMA_HINT)}\n"
    "Return ONLY the JSON object. No markdown, no extra text."
)


def build_diagnosis_request(
    image_b64: str,
    media_type: str,
    *,
    max_tokens: int,
    anthropic_version: str,
) -> Dict[str, Any]:
    """
    Messages-API body for Bedrock: one user turn holding the image block
    followed by the instruction text block.
    """
    return {
        "anthropic_version": anthropic_version,
        "max_tokens": max_tokens,
        "messages": [
            {
                "role": "user",
                "content": [
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": media_type,
                            "data": image_b64,
                        },
                    },
                    {"type": "text", "text": DIAGNOSIS_INSTRUCTION},
                ],
            }
        ],
    }
