"""
core/config.py

Typed settings loader for the service-commons toolkit.
Pydantic v2 + pydantic-settings.
Loads .env.local (or .env) from the working directory for local development.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Load environment early (.env.local preferred). Existing process variables
# always win over file values.
# ---------------------------------------------------------------------------
_env_candidates = [
    Path.cwd() / ".env.local",
    Path.cwd() / ".env",
]

for _p in _env_candidates:
    if _p.exists():
        load_dotenv(_p, override=False)
        break


# ---------------------------------------------------------------------------
# Settings Model
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    # ----- Service -----
    APP_NAME: str = "service-commons"
    APP_STAGE: str = "dev"  # dev|staging|prod
    LOG_LEVEL: str = "INFO"

    # ----- Multipart uploads -----
    # Parts larger than this spill from memory to temporary files.
    MAX_UPLOAD_MEMORY: int = 20_000_000
    MAX_UPLOAD_FILES: int = 1000
    MAX_UPLOAD_FIELDS: int = 1000

    # ----- Outbound HTTP clients -----
    HTTP_CLIENT_TIMEOUT_SEC: float = 30.0

    # ----- Firebase Cloud Messaging (legacy HTTP API) -----
    FCM_URL: str = "https://fcm.googleapis.com"
    FCM_API_KEY: str = ""

    # ----- Twilio -----
    TWILIO_BASE_URL: str = "https://api.twilio.com/2010-04-01"
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_PHONE_NUMBER: str = ""
    TWILIO_API_KEY_SID: str = ""
    TWILIO_API_KEY_SECRET: str = ""

    # ----- Pydantic Settings Config -----
    model_config = SettingsConfigDict(
        env_file=None,  # already loaded manually above
        case_sensitive=False,
        extra="ignore",
    )

    # ----- Validators -----
    @field_validator("FCM_URL", "TWILIO_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    @field_validator("MAX_UPLOAD_MEMORY")
    @classmethod
    def positive_upload_memory(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("MAX_UPLOAD_MEMORY must be positive")
        return v


# ---------------------------------------------------------------------------
# Cached accessor
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached accessor so Settings is constructed only once per process."""
    return Settings()
