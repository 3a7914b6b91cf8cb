# marking_backend/config.py
import os
import logging
from typing import Optional

from dotenv import load_dotenv; load_dotenv()
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

# Product defaults (in code)
DEFAULT_API_URL = "https://englishgpt.everythingenglish.xyz"
DEFAULT_TIMEOUT = 120.0
EVALUATE_PATH   = "/api/public/evaluate"
DEFAULT_USER_ID = "public-api"


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


class MarkingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_API_URL
    api_key: Optional[str] = None
    require_api_key: bool = False
    timeout: float = DEFAULT_TIMEOUT

    @property
    def evaluate_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{EVALUATE_PATH}"


def _timeout_env() -> float:
    raw = (os.getenv("MARKING_API_TIMEOUT") or "").strip()
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        value = 0.0
    if value <= 0:
        logger.warning("[config] MARKING_API_TIMEOUT=%r is not a positive number; using %s", raw, DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    return value


def load_settings() -> MarkingSettings:
    """
    Read the marking service settings from env (or .env).
    Build once at startup and pass the result around; call sites should not
    reach into os.environ themselves.
    """
    settings = MarkingSettings(
        base_url=_first_env("MARKING_API_URL", "ENGLISHGPT_API_URL", "PUBLIC_MARKING_API_BASE_URL") or DEFAULT_API_URL,
        api_key=_first_env("MARKING_API_KEY", "ENGLISHGPT_API_KEY", "INTERNAL_API_KEY"),
        require_api_key=os.getenv("MARKING_REQUIRE_API_KEY", "0") == "1",
        timeout=_timeout_env(),
    )
    if not settings.api_key:
        if settings.require_api_key:
            logger.warning("[config] no marking API key set; evaluate calls will be refused")
        else:
            logger.warning("[config] no marking API key set; evaluate calls will be sent unauthenticated")
    return settings


def summary(settings: MarkingSettings, safe: bool = True) -> dict:
    out = {
        "marking_api_url": settings.base_url,
        "require_api_key": settings.require_api_key,
        "timeout": settings.timeout,
    }
    if not safe:
        out["api_key_present"] = bool(settings.api_key)
    return out
