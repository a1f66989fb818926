"""
Environment-driven settings.

Each value is parsed once at import time. Invalid values fall back to the
default with a warning instead of failing startup.
"""

import logging
import os
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _env(name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid %s value %r; falling back to default %s", name, raw, default)
        return default


def _optional(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or None


class LLMConfig:
    """OpenAI settings shared by merchant classification and question answering"""
    API_KEY = _optional("OPENAI_API_KEY")
    MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
    TEMPERATURE = _env("LLM_TEMPERATURE", 0.3, float)
    MAX_TOKENS = _env("LLM_MAX_TOKENS", 800, int)
    TIMEOUT_SECONDS = _env("LLM_TIMEOUT", 15, int)
    MAX_RETRIES = _env("LLM_MAX_RETRIES", 0, int)


class MerchantAIConfig:
    CLASSIFIER_URL = _optional("MERCHANT_CLASSIFIER_URL")
    CACHE_PATH = _optional("AI_CACHE_PATH")
    # Merchant classification is always run cold, whatever LLM_TEMPERATURE says.
    TEMPERATURE = 0.3
    HTTP_TIMEOUT_SECONDS = _env("MERCHANT_CLASSIFIER_TIMEOUT", 10, int)


class AskConfig:
    DEFAULT_CREDITS = _env("ASK_DEFAULT_CREDITS", 50, int)
    AUDIT_LOG_PATH = _optional("ASK_AUDIT_LOG_PATH")


class RateLimitConfig:
    ASK_PER_MINUTE = _env("ASK_RATE_LIMIT_PER_MINUTE", 60, int)
    WINDOW_SECONDS = 60


class AdminConfig:
    # When unset, admin routes are open (local development).
    TOKEN = _optional("ADMIN_TOKEN")
