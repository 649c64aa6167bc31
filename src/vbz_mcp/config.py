"""Settings for the departure monitor, read from VBZ_* environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://api.opentransportdata.swiss/ojp2020"
DEFAULT_STOP_POINT_ID = "8591067"  # Zürich, Bahnhofplatz/HB
MIN_API_KEY_LENGTH = 20


class ConfigurationError(Exception):
    """Raised when the API key is missing or does not look like a token."""


class Settings(BaseSettings):
    """Monitor configuration."""

    api_key: str = ""
    api_url: str = DEFAULT_API_URL
    stop_point_id: str = DEFAULT_STOP_POINT_ID
    number_of_results: int = Field(default=5, gt=0)
    monitoring_interval_ms: int = Field(default=30000, gt=0)
    connection_timeout_ms: int = Field(default=5000, gt=0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="VBZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def interval_seconds(self) -> float:
        return self.monitoring_interval_ms / 1000

    @property
    def timeout_seconds(self) -> float:
        return self.connection_timeout_ms / 1000


def check_api_key(api_key: str) -> None:
    """Validate the API key without contacting the API.

    Raises:
        ConfigurationError: the key is empty or shorter than a real token.
    """
    if not api_key or not api_key.strip():
        raise ConfigurationError("API Key not configured")
    if len(api_key) < MIN_API_KEY_LENGTH:
        raise ConfigurationError(
            f"API Key seems very short ({len(api_key)} chars). "
            "Please check if this is a valid token."
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
