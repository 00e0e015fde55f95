from __future__ import annotations

import os
from typing import List, Optional


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


LLM_URL = os.getenv("LLM_URL", "https://api.openai.com/v1/chat/completions")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_TIMEOUT = _float_env("LLM_TIMEOUT", 20.0)

DEFAULT_DURATION_MINUTES = _int_env("DEFAULT_DURATION_MINUTES", 45)
MAX_DURATION_MINUTES = _int_env("MAX_DURATION_MINUTES", 180)
TIMER_TICK_SECONDS = _float_env("TIMER_TICK_SECONDS", 1.0)
LOW_TIME_SECONDS = 300

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def llm_api_key() -> Optional[str]:
    """Read at call time so a key added to the environment is picked up without a restart."""
    key = (os.getenv("OPENAI_API_KEY") or "").strip()
    return key or None


def cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    origins = [item.strip() for item in raw.split(",") if item.strip()]
    return origins or ["*"]
