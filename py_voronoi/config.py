"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, overridable through PY_VORONOI_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="PY_VORONOI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Generation
    default_plane_size: float = Field(
        default=600.0, gt=0, description="Plane size for blank and random diagrams"
    )
    default_random_count: int = Field(
        default=100, ge=0, description="Point count for random diagrams"
    )

    # Rendering
    render_dpi: int = Field(default=100, gt=0, description="Output image resolution")
    render_size_inches: float = Field(
        default=6.0, gt=0, description="Output image edge length in inches"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="console", description="Log format (console or json)")


settings = Settings()
