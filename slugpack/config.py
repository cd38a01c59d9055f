"""Configuration settings for slugpack.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.

Note these settings configure slugpack itself. Variables that steer a build
(RUBY_VERSION, BUNDLE_WITHOUT, ...) are read from the build environment.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from slugpack.types import ArtifactMode


def _default_cache_dir() -> Path:
    """Return the default build cache directory."""
    return Path.home() / ".cache" / "slugpack"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the SLUGPACK_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="SLUGPACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Remote sources
    vendor_url: str = Field(
        default="https://s3.amazonaws.com/heroku-buildpack-ruby",
        description="Base URL of the remote artifact store",
    )
    jsnes_git_url: str = Field(
        default="https://github.com/hone/jsnes.git",
        description="Git repository overlaid onto JSNES builds",
    )

    # Paths
    cache_dir: Path = Field(
        default_factory=_default_cache_dir,
        description="Root directory of the cross-build cache",
    )
    runtime_scratch_dir: Path = Field(
        default=Path("/tmp"),
        description="Directory holding build-time runtime toolchains",
    )

    # Output
    artifact_mode: ArtifactMode = Field(
        default=ArtifactMode.HTML,
        description="Format of the generated ROM listing",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    http_timeout: int = Field(
        default=600,
        ge=10,
        description="Timeout for remote artifact requests",
    )


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
