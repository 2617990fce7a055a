"""
Application configuration via pydantic-settings.
All config read from environment variables with sensible defaults for local dev.

The personalization core never reads these directly: routers turn them into
a RailConfig and pass it explicitly.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # App
    app_name: str = "personalization-api"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    debug: bool = False
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR)$")

    # Request limits
    interactions_max_records: int = 5000
    request_max_bytes: int = 2_097_152  # 2MB

    # Personalized rails (guardrail defaults)
    personalized_rails_enabled: bool = True
    personalized_rails_max: int = Field(default=3, ge=3, le=5)
    personalized_rails_min_events: int = Field(default=4, ge=1)
    personalized_rails_min_interactions: int = Field(default=5, ge=0)
    personalized_discovery_floor: float = Field(default=0.3, ge=0.0, le=1.0)
    personalized_veto_threshold: int = Field(default=2, ge=1)
    affinity_half_life_days: int = Field(default=30, ge=1)

    # Dynamic categories
    dynamic_categories_enabled: bool = True
    dynamic_categories_limit: int = Field(default=3, ge=0, le=5)

    # Rail materialization
    rail_events_limit: int = Field(default=20, ge=1)

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


settings = Settings()
