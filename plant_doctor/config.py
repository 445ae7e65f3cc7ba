from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "plant-doctor-api"
    log_level: str = "INFO"

    # upload policy
    max_image_bytes: int = 5 * 1024 * 1024

    # in-memory sessions (each may hold an image of up to max_image_bytes)
    max_sessions: int = 100
    session_ttl_seconds: float = 30 * 60

    # diagnosis configuration
    diagnosis_provider: str = "mock"  # "mock" | "bedrock"
    diagnosis_timeout_seconds: float = 60.0

    # AWS Bedrock (credentials fall back to the default AWS chain when unset)
    aws_region: str = "us-east-1"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_session_token: Optional[str] = None
    bedrock_model_id: str = "anthropic.claude-3-sonnet-20240229-v1:0"
    bedrock_max_tokens: int = 1000
    bedrock_anthropic_version: str = "bedrock-2023-05-31"


settings = Settings()
