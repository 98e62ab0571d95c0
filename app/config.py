"""
Environment configuration for the NeuroFlow backend.
Values come from the process environment, with a .env file as fallback.
"""

import os
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_CORS_ORIGINS = ["http://localhost:5173"]


@dataclass
class Settings:
    store_path: Optional[str] = None        # JSON file backing the store; None keeps it in memory
    refresh_interval: float = 5.0           # live score poll, seconds
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    live_monitor: bool = True


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, using {default}")
        return default
    return value


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    origins = os.getenv("NEUROFLOW_CORS_ORIGINS", "")
    return Settings(
        store_path=os.getenv("NEUROFLOW_STORE_PATH") or None,
        refresh_interval=_float_env("NEUROFLOW_REFRESH_INTERVAL", 5.0),
        log_level=os.getenv("NEUROFLOW_LOG_LEVEL", "INFO").upper(),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or list(DEFAULT_CORS_ORIGINS),
        live_monitor=_bool_env("NEUROFLOW_LIVE_MONITOR", True),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
