from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="CUESHEET_")

    app_name: str = "CueSheet"
    debug: bool = True

    # Timeline defaults (minutes)
    lead_setup_minutes: int = 60
    opening_offset_minutes: int = 15
    call_buffer_minutes: int = 30
    milestone_tolerance_minutes: int = 15
    default_milestone_minutes: int = 15
    filler_gap_threshold_minutes: int = 15
    long_event_minutes: int = 300

    # Safety distance is given in meters; this many meters cost one minute of separation
    safety_meters_per_minute: float = 10.0

    baseline_staff: int = 2
    hazard_categories: Tuple[str, ...] = ("fire", "aerial")
    peak_window_start: float = 0.3
    peak_window_end: float = 0.7

    cache_enabled: bool = False
    redis_url: str = Field("redis://localhost:6379/0", validation_alias="REDIS_URL")
    cache_ttl_seconds: int = 3600


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


@dataclass(frozen=True)
class EngineConfig:
    """Immutable tuning knobs handed to the pure engine functions."""

    lead_setup_minutes: int = 60
    opening_offset_minutes: int = 15
    call_buffer_minutes: int = 30
    milestone_tolerance_minutes: int = 15
    default_milestone_minutes: int = 15
    filler_gap_threshold_minutes: int = 15
    long_event_minutes: int = 300
    safety_meters_per_minute: float = 10.0
    baseline_staff: int = 2
    hazard_categories: Tuple[str, ...] = ("fire", "aerial")
    peak_window_start: float = 0.3
    peak_window_end: float = 0.7

    @classmethod
    def from_settings(cls, settings: Settings) -> "EngineConfig":
        return cls(
            lead_setup_minutes=settings.lead_setup_minutes,
            opening_offset_minutes=settings.opening_offset_minutes,
            call_buffer_minutes=settings.call_buffer_minutes,
            milestone_tolerance_minutes=settings.milestone_tolerance_minutes,
            default_milestone_minutes=settings.default_milestone_minutes,
            filler_gap_threshold_minutes=settings.filler_gap_threshold_minutes,
            long_event_minutes=settings.long_event_minutes,
            safety_meters_per_minute=settings.safety_meters_per_minute,
            baseline_staff=settings.baseline_staff,
            hazard_categories=tuple(settings.hazard_categories),
            peak_window_start=settings.peak_window_start,
            peak_window_end=settings.peak_window_end,
        )


def get_engine_config() -> EngineConfig:
    return EngineConfig.from_settings(get_settings())
