"""Application settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    data_url: str | None = Field(
        default=None,
        description="Base URL of the hosted backend; in-memory storage when unset",
    )

    api_key: str = Field(
        default="",
        description="API key sent as apikey and bearer token",
    )

    origin: str = Field(
        default="http://localhost:8080",
        description="Origin used to build shareable board links",
    )

    user_name: str = Field(
        default="Current User",
        description="Display name attached to new comments",
    )

    user_avatar: str | None = Field(
        default=None,
        description="Optional avatar reference attached to new comments",
    )

    request_timeout: float = Field(
        default=30.0,
        description="HTTP timeout in seconds for backend calls",
    )

    seed_file: Path | None = Field(
        default=None,
        description="YAML file used to seed the in-memory backend",
    )

    verbose: int = Field(
        default=0,
        description="Verbosity level (0=off, 1=INFO, 2+=DEBUG)",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional path to write logs to file",
    )

    model_config = {
        "env_prefix": "BOARDSYNC_",
    }
