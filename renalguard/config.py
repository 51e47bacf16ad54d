"""
RenalGuard — Configuration
==========================
Operational settings for the decision engine. Loaded from environment
variables prefixed with RENALGUARD_ and from an optional .env file.

Clinical thresholds are NOT configurable here; they live as named
constants next to the rules that use them.
"""
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RENALGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    engine_version: str = "1.0.0"

    # ── Logging ─────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # ── KFRE calibration ────────────────────────────────────────────────
    kfre_region: Literal["north_american", "non_north_american"] = "north_american"

    # ── Batch evaluation ────────────────────────────────────────────────
    batch_max_workers: int = Field(default=8, ge=1)


settings = Settings()
