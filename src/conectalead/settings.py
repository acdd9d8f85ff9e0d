"""
Settings for ConectaLead.

Values come from the environment (optionally a .env file in the working
directory). Use get_settings() rather than instantiating Settings directly
so every caller shares one lazily built instance.
"""

import functools
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = "CONECTALEAD_"

DEFAULT_HOME = Path.home() / ".conectalead"


class Settings(BaseModel):
    """Runtime configuration."""

    BACKEND: str = Field("sql", description="Remote backend: 'rest' (hosted) or 'sql' (self-hosted)")

    # Hosted backend-as-a-service
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""

    # Self-hosted backend
    DATABASE_URL: str = "sqlite:///conectalead.db"
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Workflow engine (WhatsApp sessions)
    WORKFLOW_BASE_URL: str = "https://seun8n.com/webhook"
    WHATSAPP_POLL_SECONDS: float = 5.0

    # Support contacts
    SUPPORT_WHATSAPP: str = "5561994142031"
    SUPPORT_PHONE: str = "+5511999999999"
    SUPPORT_EMAIL: str = "suporte@conectalead.com.br"

    # Admin detection
    ADMIN_EMAIL_MARKER: str = "admin"
    LEGACY_ADMIN_DETECTION: bool = True

    # CLI
    SESSION_FILE: Path = DEFAULT_HOME / "session"
    PREFERENCES_DIR: Path = DEFAULT_HOME / "preferences"
    ENCRYPTION_KEY: str = ""

    LOG_LEVEL: str = "INFO"
    HTTP_TIMEOUT: float = 30.0


def _read_env() -> dict[str, str]:
    """Collect CONECTALEAD_* variables, stripping the prefix."""
    values = {}
    for name in Settings.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{name}")
        if raw is not None:
            values[name] = raw
    return values


@functools.lru_cache()
def get_settings() -> Settings:
    """
    Get settings (cached).

    Loads .env on first call; explicit environment variables win over
    the file. Tests call get_settings.cache_clear() after changing env.
    """
    load_dotenv(Path.cwd() / ".env", override=False)
    return Settings(**_read_env())
