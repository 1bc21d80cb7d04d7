from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    """Pricing engine settings loaded from environment variables."""

    lookback_window_s: int = Field(300, alias="SURGE_LOOKBACK_SECONDS")
    surge_threshold: int = Field(3, alias="SURGE_THRESHOLD")
    surge_multiplier: Decimal = Field(Decimal("1.10"), alias="SURGE_MULTIPLIER")
    cooldown_window_s: int = Field(600, alias="SURGE_COOLDOWN_SECONDS")
    sweep_interval_s: int = Field(60, alias="SURGE_SWEEP_INTERVAL_SECONDS")
    attempt_scope: Literal["flight", "user"] = Field(
        "flight", alias="SURGE_ATTEMPT_SCOPE"
    )
    log_level: str = Field("INFO", alias="SURGE_LOG_LEVEL")

    @field_validator(
        "lookback_window_s",
        "surge_threshold",
        "cooldown_window_s",
        "sweep_interval_s",
    )
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("surge_multiplier")
    @classmethod
    def _multiplier_raises(cls, v: Decimal) -> Decimal:
        if v <= 1:
            raise ValueError("SURGE_MULTIPLIER must be greater than 1")
        return v

    @field_validator("attempt_scope", mode="before")
    @classmethod
    def _normalise_scope(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper()


@lru_cache()
def get_settings() -> Settings:
    """Return pricing settings loaded from the environment."""
    return Settings()  # type: ignore[call-arg]


__all__ = ["Settings", "get_settings"]
