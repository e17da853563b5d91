"""
Configuration loader for the achievement proof verifier.

- Reads environment variables (optionally from `.env`) via pydantic-settings.
- Exposes a cached `get_settings()` accessor; tests build `Settings(...)`
  directly and pass it to the engine instead.

Environment variables (prefix ``ACHIEVEMENT_PROOFS_``):
    CURVE              (str, default "bn128")    - curve id proofs and keys must declare
    LEDGER_URL         (str, default "memory:")  - "memory:", "sqlite:///:memory:", "sqlite:///path.db"
    EXECUTOR           ("process"|"thread", default "process") - pairing worker pool kind
    MAX_WORKERS        (int >= 1, default CPU count)          - pairing worker pool size
    VERIFY_TIMEOUT_S   (float > 0, optional)     - per-request wait bound for the pairing result
    KEYS_DIR           (path, optional)          - root for DirectoryKeyResolver
    LOG_LEVEL          (str, default "INFO")
    LOG_FORMAT         ("json"|"console", default "json")
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .verifiers.field import supported_curves


def _default_workers() -> int:
    return max(1, os.cpu_count() or 1)


class Settings(BaseSettings):
    curve: str = Field("bn128", description="Curve id accepted in proofs and keys")
    ledger_url: str = Field("memory:", description="Proof record ledger store URL")
    executor: Literal["process", "thread"] = Field(
        "process", description="Worker pool kind for pairing checks"
    )
    max_workers: int = Field(default_factory=_default_workers, ge=1)
    verify_timeout_s: Optional[float] = Field(None, gt=0)
    keys_dir: Optional[Path] = None
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_format: Literal["json", "console"] = "json"

    model_config = SettingsConfigDict(
        env_prefix="ACHIEVEMENT_PROOFS_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @field_validator("curve")
    @classmethod
    def _known_curve(cls, v: str) -> str:
        if v not in supported_curves():
            raise ValueError(f"unsupported curve {v!r}; supported: {', '.join(supported_curves())}")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = str(v).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {v!r}")
        return level

    @field_validator("ledger_url")
    @classmethod
    def _known_scheme(cls, v: str) -> str:
        if not (v.startswith("memory:") or v.startswith("sqlite:///")):
            raise ValueError("ledger_url must start with 'memory:' or 'sqlite:///'")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # pydantic-settings will read .env automatically


__all__ = ["Settings", "get_settings"]
