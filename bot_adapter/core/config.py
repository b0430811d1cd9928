from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    # Shared deadline for every bounded operation (fetch, analysis, OCR)
    bot_operation_timeout_ms: int = 120_000

    # Remote image download
    fetch_max_bytes: int = 20 * 1024 * 1024
    fetch_user_agent: str = "bot-adapter/0.1"

    # Text analysis provider: mock | openai | none
    analysis_provider: str = "mock"
    openai_api_key: str | None = None
    llm_model: str = "gpt-4o-mini"

    # OCR provider: mock | paddleocr | aws_textract | none
    ocr_provider: str = "mock"
    paddle_lang: str = "en"
    paddle_use_gpu: bool = False

    # AWS Textract (only needed when ocr_provider=aws_textract)
    aws_region: str = "us-east-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None


settings = Settings()


def operation_timeout_ms() -> int:
    """Return the current operation budget, re-reading the environment each call."""
    return Settings().bot_operation_timeout_ms
