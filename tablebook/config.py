from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env file.

    The reservation API is the only required collaborator. ``API_TOKEN`` is
    sent as a bearer token when set; the API owns reservation persistence
    and conflict detection.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Reservation / availability API
    api_base_url: str = "http://localhost:3001"
    api_token: str | None = None
    request_timeout: float = 30.0

    # Booking limits: mirror the form's date picker and party-size select
    max_advance_days: int = 90
    min_party_size: int = 1
    max_party_size: int = 12

    # Display
    reviews_page_size: int = 3
    restaurant_cache_ttl: float = 300.0

    # Remote hosting: transport, bind address, and auth
    mcp_transport: str = "stdio"
    mcp_host: str = "0.0.0.0"
    mcp_port: int = 8000
    mcp_auth_token: str | None = None

    # Paths & logging: default is <project_root>/data so it works
    # regardless of the process working directory.
    data_dir: Path = Path(__file__).resolve().parent.parent / "data"
    log_level: str = "INFO"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def db_path(self) -> Path:
        return self.data_dir / "tablebook.db"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the cached Settings singleton. Created on first call."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Clear the cached settings. Used in tests."""
    global _settings  # noqa: PLW0603
    _settings = None
