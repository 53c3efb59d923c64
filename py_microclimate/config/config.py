"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MICROCLIMATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Grid
    grid_size: int = Field(default=100, ge=5, le=400, description="Cells per grid side")
    cell_size: float = Field(default=6.0, gt=0, description="Horizontal cell spacing in meters")

    # Simulation clock
    sim_minutes_per_real_second: float = Field(
        default=15.0, gt=0, description="Simulated minutes per real second at 1x speed"
    )
    start_minutes: float = Field(default=6 * 60, ge=0, description="Clock value at reset (minutes)")

    # Randomness
    default_seed: str = Field(default="microclimate", description="Seed used when none is given")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Logging format (console or json)")


settings = Settings()
