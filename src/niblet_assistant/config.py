from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the Niblet assistant service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # OpenAI
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    openai_model: str = Field(default="gpt-4-turbo", alias="OPENAI_MODEL")
    transcription_model: str = Field(default="whisper-1", alias="TRANSCRIPTION_MODEL")
    availability_timeout: float = Field(default=5.0, alias="AVAILABILITY_TIMEOUT")

    # Retry policy shared by thread/assistant creation, run start and transcription
    retry_attempts: int = Field(default=3, alias="RETRY_ATTEMPTS")
    retry_base_delay: float = Field(default=1.0, alias="RETRY_BASE_DELAY")
    retry_backoff_factor: float = Field(default=1.5, alias="RETRY_BACKOFF_FACTOR")

    # Run polling
    poll_base_delay: float = Field(default=1.0, alias="POLL_BASE_DELAY")
    poll_max_delay: float = Field(default=5.0, alias="POLL_MAX_DELAY")
    poll_max_retries: int = Field(default=20, alias="POLL_MAX_RETRIES")
    poll_max_errors: int = Field(default=3, alias="POLL_MAX_ERRORS")
    rate_limit_delay_multiplier: float = Field(default=5.0, alias="RATE_LIMIT_DELAY_MULTIPLIER")
    run_timeout: float = Field(default=30.0, alias="RUN_TIMEOUT")
    image_run_timeout: float = Field(default=60.0, alias="IMAGE_RUN_TIMEOUT")

    # Run state registry
    run_stale_after: float = Field(default=120.0, alias="RUN_STALE_AFTER")
    run_inactive_ttl: float = Field(default=300.0, alias="RUN_INACTIVE_TTL")
    run_sweep_interval: float = Field(default=60.0, alias="RUN_SWEEP_INTERVAL")
    message_wait_timeout: float = Field(default=15.0, alias="MESSAGE_WAIT_TIMEOUT")
    conflict_wait_timeout: float = Field(default=10.0, alias="CONFLICT_WAIT_TIMEOUT")

    # Firebase
    firebase_service_account_key: str | None = Field(
        default=None, alias="FIREBASE_SERVICE_ACCOUNT_KEY"
    )

    # FastAPI configuration
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8080, alias="APP_PORT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


@lru_cache
def get_settings() -> Settings:
    """Return memoized settings so multiple imports share a single instance."""

    return Settings()  # type: ignore[call-arg]
