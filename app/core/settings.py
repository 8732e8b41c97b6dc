"""Service configuration, overridable through environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    APP_TITLE: str = "Referral Genealogy"
    APP_VERSION: str = "0.1.0"

    HOST: str = "127.0.0.1"
    PORT: int = Field(default=8000, ge=1, le=65535)

    LOG_LEVEL: str = "INFO"

    EMAIL_FROM_ADDRESS: str = Field(default="noreply@yourdomain.com", min_length=3)

    # Uploaded files waiting for mapping confirmation
    PREVIEW_CACHE_SIZE: int = Field(default=20, ge=1)
    PREVIEW_ROWS: int = Field(default=100, ge=1)

    IMPORT_BATCH_SIZE: int = Field(default=50, ge=1)
    MAX_REPORTED_ERRORS: int = Field(default=20, ge=0)
    MAX_STORED_ERRORS: int = Field(default=100, ge=0)

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be a logging level name, got {v!r}")
        return level


settings = Settings()
