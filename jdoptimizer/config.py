from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "llama-3.3-70b-versatile"


def getenv_default(key: str, default: str) -> str:
    return os.getenv(key, default)


def getenv_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number, got {raw!r}")


def getenv_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer, got {raw!r}")


def api_key() -> Optional[str]:
    """Completion API credential. Read on every call so a rotated key needs no restart."""
    return os.getenv("GROQ_API_KEY") or None


@dataclass
class Settings:
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    temperature: float = 0.7
    max_tokens: int = 2000
    request_timeout: float = 60.0
    relay_url: Optional[str] = None
    cors_origins: List[str] = field(default_factory=list)
    max_sessions: int = 1000


def load_settings() -> Settings:
    load_dotenv()
    origins = [o.strip() for o in getenv_default("CORS_ORIGINS", "").split(",") if o.strip()]
    return Settings(
        base_url=getenv_default("GROQ_BASE_URL", DEFAULT_BASE_URL),
        model=getenv_default("GROQ_MODEL", DEFAULT_MODEL),
        request_timeout=getenv_float("REQUEST_TIMEOUT", 60.0),
        relay_url=os.getenv("RELAY_URL") or None,
        cors_origins=origins,
        max_sessions=getenv_int("MAX_SESSIONS", 1000),
    )
