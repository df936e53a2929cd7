"""
Engine settings using Pydantic.

Provides environment-based configuration loading with INTMAP_ prefix.
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="INTMAP_",
        extra="ignore",
    )

    # Canvas
    canvas_width: int = 800
    canvas_height: int = 600

    # View controller
    zoom_min: float = 0.5
    zoom_max: float = 3.0
    show_legend: bool = True

    # Force relaxation
    force_max_iterations: int = 300
    force_energy_threshold: float = 0.05
    frame_interval: float = 1 / 60

    # Export
    supersample_factor: int = 2
    capture_timeout: float = 10.0
    output_dir: str = "."

    # Logging
    log_level: str = "INFO"

    @field_validator("canvas_width", "canvas_height")
    @classmethod
    def _positive_canvas(cls, value: int) -> int:
        if value < 100:
            raise ValueError("canvas dimensions must be at least 100px")
        return value

    @field_validator("supersample_factor")
    @classmethod
    def _supersample_range(cls, value: int) -> int:
        if not 1 <= value <= 8:
            raise ValueError("supersample_factor must be between 1 and 8")
        return value

    @model_validator(mode="after")
    def _zoom_bounds(self) -> "Settings":
        if not 0 < self.zoom_min <= 1.0 <= self.zoom_max:
            raise ValueError("zoom bounds must satisfy 0 < zoom_min <= 1 <= zoom_max")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
