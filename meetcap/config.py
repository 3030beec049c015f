"""Application configuration using pydantic-settings pattern."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Capture settings loaded from environment variables (MEETCAP_*)."""

    # Logging
    log_level: str = Field(default="INFO")

    # Run
    output_dir: Path = Field(default=Path("recordings"))
    bot_name: str = Field(default="Meetcap")
    capture_seconds: float = Field(
        default=60.0, gt=0, description="Wall-clock capture budget after admission"
    )
    headless: bool = Field(default=False)
    admission_timeout_seconds: float = Field(default=300.0, gt=0)
    settle_seconds: float = Field(
        default=5.0, ge=0, description="Pause after navigation before joining"
    )

    # Participant directory
    scrape_interval_seconds: float = Field(default=10.0, gt=0)
    scrape_timeout_seconds: float = Field(default=5.0, gt=0)
    name_match_threshold: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Minimum similarity to merge a scraped name without a stable id",
    )

    # Audio
    silence_threshold: float = Field(
        default=0.0001, ge=0.0, description="Peak amplitude below which a chunk is silent"
    )
    silence_run_limit: int = Field(
        default=30,
        ge=0,
        description="Consecutive silent chunks written before suppression starts",
    )
    csrc_level_threshold: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description="Minimum contributing-source audio level considered speech",
    )
    fallback_sample_rate: int = Field(default=16000, gt=0)
    frame_queue_size: int = Field(
        default=64, gt=0, description="Frames buffered per track before backpressure"
    )

    model_config = {
        "env_prefix": "MEETCAP_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
