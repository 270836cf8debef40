"""Bus configuration, validated once at construction."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BusConfig(BaseSettings):
    """Delays and limits for the bus; each field reads ``OBJECTBUS_<NAME>``."""

    model_config = SettingsConfigDict(
        env_prefix="OBJECTBUS_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        frozen=True,
    )

    throttle_delay: float = Field(default=0.016, gt=0)  # ~60fps
    batch_delay: float = Field(default=0.1, gt=0)
    max_batch_size: int = Field(default=50, ge=1)
    housekeeping_interval: float = Field(default=60.0, gt=0)
    max_pending_windows: int = Field(default=100, ge=1)
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _batch_slower_than_throttle(self) -> BusConfig:
        if self.batch_delay <= self.throttle_delay:
            raise ValueError("batch_delay must be greater than throttle_delay")
        return self


@lru_cache
def get_bus_config() -> BusConfig:
    """Build the config once from the environment."""
    return BusConfig()
