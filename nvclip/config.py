"""Configuration management for the NvClip URL shortener.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└────┬────┘  └─────────┘
     ▼
┌─────────┐
│ Collect │
│ ADMIN_  │
│ KEY1..N │
└─────────┘

How to Use
===========
**Step 1 — Import**::
    from nvclip.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    redis_url = settings.REDIS_URL

**Step 3 — Check admin keys**::
    if "s3cret" in settings.admin_keys:
        ...

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- ``REDIS_URL`` has no default: a missing value raises ValidationError and
  the process refuses to start.
- Admin keys are read from the indexed variables ``ADMIN_KEY1`` through
  ``ADMIN_KEY<MAX_ADMIN_KEY>``; empty values are skipped.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

import os
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "nvclip"
    APP_ENV: str = "development"
    APP_DOMAIN: str = "http://localhost:3000"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Redis
    REDIS_URL: str
    KEY_PREFIX: str = "clp"
    REDIS_MAX_RETRIES: int = 3
    REDIS_BACKOFF_BASE_SECONDS: float = 0.05
    REDIS_BACKOFF_CAP_SECONDS: float = 2.0
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 5.0

    # Admin credentials
    MAX_ADMIN_KEY: int = 20

    # Slug allocation
    SLUG_MAX_ATTEMPTS: int = 10
    SLUG_STRICT_ALLOCATION: bool = False

    # Request throttling
    RATE_LIMIT_ENABLED: bool = True
    # limits notation; whole-second windows only, so 1 per 100 ms is "10/second".
    RATE_LIMIT: str = "10/second"

    admin_keys: list[str] = []

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",
    )

    @model_validator(mode="after")
    def collect_admin_keys(self) -> "Settings":
        # Indexed keys are not declared fields; they come either from the
        # process environment or, as extras, from the .env file.
        sources = {**(self.model_extra or {}), **os.environ}
        keys = list(self.admin_keys)
        for index in range(1, self.MAX_ADMIN_KEY + 1):
            value = sources.get(f"ADMIN_KEY{index}")
            if value and value not in keys:
                keys.append(value)
        self.admin_keys = keys
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
