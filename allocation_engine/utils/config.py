"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Immutable settings snapshot shared by every layer.

    Tests derive variants with `dataclasses.replace` instead of mutating
    the cached instance.
    """

    app_name: str
    app_version: str
    database_path: Path
    sqlite_timeout_seconds: float
    log_level: str
    hold_ttl_minutes: int
    hold_conflict_max_retries: int
    alternatives_limit: int
    overbooking_alternatives_limit: int
    maintenance_recency_days: int
    allocation_timeout_seconds: Optional[float]
    seed_demo_inventory: bool
    demo_property_id: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings from environment variables once per process."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Room Allocation Engine"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        database_path=Path(os.getenv("ALLOCATION_DB_PATH", "data/allocation.db")),
        sqlite_timeout_seconds=_env_float("SQLITE_TIMEOUT_SECONDS", 10.0) or 10.0,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        hold_ttl_minutes=_env_int("HOLD_TTL_MINUTES", 5),
        hold_conflict_max_retries=_env_int("HOLD_CONFLICT_MAX_RETRIES", 3),
        alternatives_limit=_env_int("ALTERNATIVES_LIMIT", 3),
        overbooking_alternatives_limit=_env_int("OVERBOOKING_ALTERNATIVES_LIMIT", 3),
        maintenance_recency_days=_env_int("MAINTENANCE_RECENCY_DAYS", 30),
        allocation_timeout_seconds=_env_float("ALLOCATION_TIMEOUT_SECONDS", None),
        seed_demo_inventory=_env_bool("SEED_DEMO_INVENTORY", True),
        demo_property_id=os.getenv("DEMO_PROPERTY_ID", "demo-property"),
    )
