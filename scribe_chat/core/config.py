"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase Configuration
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: SecretStr = SecretStr("")

    # Anthropic Claude API
    ANTHROPIC_API_KEY: SecretStr = SecretStr("")
    CHAT_MODEL: str = "claude-sonnet-4-20250514"
    CHAT_MAX_TOKENS: int = 2048
    CHAT_TEMPERATURE: float = 0.3
    TITLE_MAX_TOKENS: int = 32

    # Model transport policy
    LLM_TIMEOUT_SECONDS: float = 30.0
    LLM_MAX_RETRIES: int = 1  # One retry for transient failures

    # Context gathering limits
    CHAT_MAX_MEETINGS: int = 10
    CHAT_MAX_NAME_MATCHED_MEETINGS: int = 5
    TITLE_FALLBACK_LENGTH: int = 50

    # CRM providers
    HUBSPOT_API_BASE_URL: str = "https://api.hubapi.com"
    SALESFORCE_API_VERSION: str = "v59.0"
    CRM_REQUEST_TIMEOUT_SECONDS: float = 10.0
    CRM_SEARCH_TIMEOUT_SECONDS: float = 5.0

    # Application Settings
    APP_ENV: Literal["development", "staging", "production"] = "development"

    # Logging
    LOG_FORMAT: Literal["text", "json"] = "text"
    LOG_LEVEL: str = "INFO"

    # CORS Configuration
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @field_validator("SUPABASE_URL")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Validate that SUPABASE_URL is a valid URL."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("SUPABASE_URL must start with http:// or https://")
        return v.rstrip("/") if v else v

    @field_validator("HUBSPOT_API_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs so paths can be appended directly."""
        return v.rstrip("/")

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def llm_configured(self) -> bool:
        """Check if the Anthropic API key is present."""
        return bool(self.ANTHROPIC_API_KEY.get_secret_value())

    def validate_startup(self) -> None:
        """Validate that all required secrets are configured.

        A missing Anthropic key is only logged: chat turns then fail with a
        configuration error while the rest of the API keeps working.

        Raises:
            ValueError: If any required secret is missing or empty.
        """
        required_secrets = {
            "SUPABASE_URL": self.SUPABASE_URL,
            "SUPABASE_SERVICE_ROLE_KEY": self.SUPABASE_SERVICE_ROLE_KEY.get_secret_value(),
        }
        missing = [name for name, value in required_secrets.items() if not value]
        if missing:
            raise ValueError(f"Required secrets are missing or empty: {', '.join(missing)}")
        if not self.llm_configured:
            logger.warning("ANTHROPIC_API_KEY not configured - chat responses DISABLED")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance with validated configuration.
    """
    return Settings()


# Global settings instance - import this for easy access
settings = get_settings()
