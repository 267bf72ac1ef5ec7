"""Application settings, read from the environment or a ``.env`` file"""
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.enums import DiscountPolicy, HoldReleaseMode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    APP_NAME: str = "Hotel Booking API"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "standard"] = "json"

    # Auth
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30, ge=1)

    # Holds and payments
    HOLD_MINUTES: int = Field(default=15, ge=1)
    PAYMENT_IDEMPOTENCY_WINDOW_MINUTES: int = Field(default=5, ge=0)
    HOLD_RELEASE_MODE: HoldReleaseMode = HoldReleaseMode.LAZY
    HOLD_SWEEP_INTERVAL_SECONDS: float = Field(default=60.0, gt=0)
    SIMULATED_SETTLEMENT_DELAY_SECONDS: float = Field(default=0.0, ge=0)

    # Pricing
    CURRENCY: str = "PEN"
    DISCOUNT_INELIGIBLE_POLICY: DiscountPolicy = DiscountPolicy.IGNORE
    FIRST_RESERVATION_DISCOUNT_CODE: str = "PRIMERAVEZ"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
