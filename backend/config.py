"""
Application configuration using pydantic-settings.

Loads configuration from environment variables with sensible defaults.
"""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from CRS_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CRS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Default message header values (overridable per request)
    transmitting_country: str = "MU"
    receiving_country: str = "MU"
    message_type: str = "CRS"
    message_type_indic: str = "CRS701"
    doc_type_indic: str = "OECD1"

    # Uploads
    max_upload_size_mb: int = 5
    allowed_extensions: List[str] = [".xlsx", ".xlsm"]

    # Application
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:3000"]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get maximum upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
