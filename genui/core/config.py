"""Configuration Management."""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="GENUI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=False, description="Use JSON log format")

    # Generation loop
    max_attempts: int = Field(default=3, gt=0, le=10, description="Design attempts per generation")
    enable_fallback: bool = Field(default=True, description="Apply deterministic fallback UI")

    # Spec limits
    max_depth: int = Field(default=30, gt=0, description="Max reachable depth from root")
    max_nodes: int = Field(default=1500, gt=0, description="Max elements per spec")
    text_element_type: str = Field(default="Text", min_length=1, description="Type for literal children")
    spec_hash_algorithm: str = Field(default="sha256", description="sha256 or xxhash64")

    # Component context service
    context_url: str | None = Field(default=None, description="Component context endpoint")
    context_api_key: str | None = Field(default=None, description="Bearer token for context service")
    context_timeout: float = Field(default=5.0, gt=0, description="Context request timeout")
    breaker_fail_max: int = Field(default=5, gt=0, description="Failures before the breaker opens")
    breaker_reset_timeout: int = Field(default=30, gt=0, description="Seconds before a half-open retry")



@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
