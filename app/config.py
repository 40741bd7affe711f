"""Settings via pydantic-settings.

Credentials use the unprefixed names (ANTHROPIC_API_KEY, FLIPLET_API_TOKEN,
FLIPLET_APP_ID) so the same .env works for the server and the scripts.
Everything else is tunable through ASSISTANT_-prefixed variables.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ASSISTANT_", env_file=".env", extra="ignore", frozen=True, populate_by_name=True
    )

    # Model
    anthropic_api_key: str = Field(validation_alias="ANTHROPIC_API_KEY")
    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 4096

    # Fliplet
    fliplet_api_token: str = Field(validation_alias="FLIPLET_API_TOKEN")
    fliplet_app_id: str = Field(validation_alias="FLIPLET_APP_ID")
    fliplet_api_url: str = Field("https://api.fliplet.com", validation_alias="FLIPLET_API_URL")
    request_timeout: float = 30.0

    # Conversation loop
    max_iterations: int = Field(10, ge=1)

    # Sessions
    max_sessions: int = Field(100, ge=1)
    session_ttl_minutes: float = Field(30, gt=0)
    cleanup_interval_minutes: float = Field(5, gt=0)

    # Runtime
    host: str = "0.0.0.0"
    port: int = 3000
    chat_rate_limit: str = "30/minute"
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance to avoid repeated environment reads."""
    return Settings()
