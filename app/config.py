"""Runtime settings read from the environment and the project .env file (python-dotenv)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROJECT_DIR = Path(__file__).resolve().parent.parent


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_number(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("%s=%r must be positive; using %s", name, raw, default)
        return default
    return value


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    static_dir: str = "public"
    ws_path: str = "/ws"
    eviction_interval_seconds: float = 60.0
    stale_after_seconds: float = 300.0
    active_window_seconds: float = 60.0
    outbox_size: int = 256
    log_level: str = "INFO"
    environment: str = "development"


def load_settings(*, env_file: str | os.PathLike[str] | None = None) -> Settings:
    """Build Settings from os.environ after loading the project .env (existing vars win)."""
    load_dotenv(env_file or PROJECT_DIR / ".env")
    origins = [o.strip() for o in _env_str("CORS_ORIGINS", "*").split(",") if o.strip()]
    ws_path = _env_str("WS_PATH", "/ws")
    return Settings(
        host=_env_str("HOST", "0.0.0.0"),
        port=int(_env_number("PORT", 3000)),
        cors_origins=origins or ["*"],
        static_dir=_env_str("STATIC_DIR", "public"),
        ws_path=ws_path if ws_path.startswith("/") else f"/{ws_path}",
        eviction_interval_seconds=_env_number("EVICTION_INTERVAL_SECONDS", 60.0),
        stale_after_seconds=_env_number("STALE_AFTER_SECONDS", 300.0),
        active_window_seconds=_env_number("ACTIVE_WINDOW_SECONDS", 60.0),
        outbox_size=int(_env_number("OUTBOX_SIZE", 256)),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        environment=_env_str("ENVIRONMENT", "development"),
    )
