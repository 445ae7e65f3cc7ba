import asyncio

import pytest

from plant_doctor.config import Settings
from plant_doctor.core.errors import ParseError, ReadError
from plant_doctor.diagnosis.base import DiagnosisClientConfig
from plant_doctor.diagnosis.factory import create_diagnosis_client
from plant_doctor.diagnosis.mock import MockDiagnosisClient


def test_mock_provider_returns_mock_client():
    client = create_diagnosis_client(Settings(diagnosis_provider=" MOCK "))
    assert isinstance(client, MockDiagnosisClient)
    assert client.model_id == "mock-diagnosis"


def test_bedrock_provider_builds_client_from_settings():
    s = Settings(
        diagnosis_provider="bedrock",
        aws_region="eu-west-1",
        aws_access_key_id="AKIDEXAMPLE",
        aws_secret_access_key="secret",
        bedrock_model_id="anthropic.some-model",
    )

    client = create_diagnosis_client(s)

    assert client.model_id == "anthropic.some-model"


def test_unknown_provider_is_rejected():
    with pytest.raises(ValueError):
        create_diagnosis_client(Settings(diagnosis_provider="openai"))


def test_config_from_settings_copies_every_field():
    s = Settings(
        aws_region="ap-south-1",
        aws_access_key_id="id",
        aws_secret_access_key="key",
        aws_session_token="token",
        bedrock_model_id="model",
        bedrock_max_tokens=321,
        diagnosis_timeout_seconds=12.5,
    )

    cfg = DiagnosisClientConfig.from_settings(s)

    assert cfg == DiagnosisClientConfig(
        region="ap-south-1",
        model_id="model",
        access_key_id="id",
        secret_access_key="key",
        session_token="token",
        max_tokens=321,
        anthropic_version="bedrock-2023-05-31",
        timeout_seconds=12.5,
    )


def test_mock_client_goes_through_parser():
    result = asyncio.run(MockDiagnosisClient().diagnose("data:image/png;base64,AAAA"))
    assert result.is_healthy
    assert len(result.recommendations) == 3


def test_mock_client_can_reply_with_garbage():
    with pytest.raises(ParseError):
        asyncio.run(MockDiagnosisClient(reply_text="no idea").diagnose("data:image/png;base64,AAAA"))


def test_mock_client_rejects_non_data_uri():
    with pytest.raises(ReadError):
        asyncio.run(MockDiagnosisClient().diagnose("AAAA"))
