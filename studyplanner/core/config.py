from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STUDYPLANNER_",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )
    database_url: str = Field(default="sqlite:///./studyplanner.db")

    # Generation horizon used when the caller does not pass an end date
    schedule_horizon_days: int = Field(default=60, ge=1)
    # How far ahead the incremental rescheduler looks after a completion
    reschedule_horizon_days: int = Field(default=60, ge=1)
    max_blocks_per_day: int = Field(default=8, ge=1)
    tie_break_seed: int = Field(default=0)


@lru_cache
def get_settings() -> Settings:
    return Settings()
