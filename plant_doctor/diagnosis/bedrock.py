"""
AWS Bedrock diagnosis client.

One diagnose() call = one InvokeModel request:
- strip the data-URI prefix from the transport text
- send the image block + instruction with a bounded output budget
- pull the text blocks out of the reply and parse the diagnosis

No retries and no caching. boto3 is blocking, so the call runs in a worker
thread under a timeout to keep the event loop free.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional

import anyio
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from plant_doctor.core.errors import ParseError, ReadError, RemoteCallError
from plant_doctor.core.models import AnalysisResult
from plant_doctor.diagnosis.base import DiagnosisClientConfig
from plant_doctor.diagnosis.parsing import parse_diagnosis
from plant_doctor.diagnosis.prompting import build_diagnosis_request
from plant_doctor.preprocessing.encoding import split_data_uri

logger = logging.getLogger(__name__)


def _create_runtime_client(config: DiagnosisClientConfig):
    return boto3.client(
        "bedrock-runtime",
        region_name=config.region,
        aws_access_key_id=config.access_key_id,
        aws_secret_access_key=config.secret_access_key,
        aws_session_token=config.session_token,
        config=BotoConfig(read_timeout=config.timeout_seconds, retries={"max_attempts": 1, "mode": "standard"}),
    )


def _reply_text(body: Dict[str, Any]) -> Optional[str]:
    """Concatenate the text blocks of a Messages-API reply."""
    content = body.get("content")
    if not isinstance(content, list):
        return None
    parts = [
        block.get("text", "")
        for block in content
        if isinstance(block, dict) and block.get("type", "text") == "text"
    ]
    text = "".join(p for p in parts if isinstance(p, str))
    return text or None


class BedrockDiagnosisClient:
    def __init__(self, config: DiagnosisClientConfig, runtime_client: Any = None):
        self._config = config
        # Injected in tests; anything with invoke_model(**kwargs) works.
        self._runtime = runtime_client if runtime_client is not None else _create_runtime_client(config)

    @property
    def model_id(self) -> str:
        return self._config.model_id

    async def diagnose(self, transport_text: str) -> AnalysisResult:
        try:
            media_type, image_b64 = split_data_uri(transport_text)
        except ValueError as e:
            raise ReadError(f"Image payload is not a base64 data URI: {e}") from e

        body = build_diagnosis_request(
            image_b64,
            media_type,
            max_tokens=self._config.max_tokens,
            anthropic_version=self._config.anthropic_version,
        )

        logger.info("diagnosis_request model=%s media_type=%s", self.model_id, media_type)
        start = time.perf_counter()
        reply = await self._invoke(body)
        duration_ms = int((time.perf_counter() - start) * 1000)

        if not isinstance(reply, dict):
            raise ParseError("Model reply is not a JSON object", raw_text=json.dumps(reply))

        text = _reply_text(reply)
        if text is None:
            raise ParseError("Model reply has no text content", raw_text=json.dumps(reply))

        logger.info("diagnosis_response model=%s duration_ms=%d chars=%d", self.model_id, duration_ms, len(text))
        return parse_diagnosis(text)

    async def _invoke(self, body: Dict[str, Any]) -> Any:
        try:
            with anyio.fail_after(self._config.timeout_seconds):
                response = await anyio.to_thread.run_sync(
                    lambda: self._invoke_sync(body), abandon_on_cancel=True
                )
        except TimeoutError as e:
            raise RemoteCallError(
                f"Bedrock call timed out after {self._config.timeout_seconds}s", cause=e
            ) from e
        except ClientError as e:
            err = e.response.get("Error", {})
            raise RemoteCallError(
                f"Bedrock rejected the request ({err.get('Code', 'ClientError')}): {err.get('Message', e)}",
                cause=e,
            ) from e
        except BotoCoreError as e:
            raise RemoteCallError(f"Bedrock call failed: {e}", cause=e) from e
        except Exception as e:
            # Unknown errors become remote errors so callers have a consistent surface
            raise RemoteCallError(f"{type(e).__name__}: {e}", cause=e) from e

        try:
            raw = response["body"].read()
            return json.loads(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteCallError(f"Unreadable Bedrock response: {e}", cause=e) from e

    def _invoke_sync(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return self._runtime.invoke_model(
            modelId=self._config.model_id,
            body=json.dumps(body),
            contentType="application/json",
            accept="application/json",
        )
