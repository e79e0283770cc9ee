import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

AUTH_MODES = ("secret", "otp")


@dataclass(frozen=True)
class Settings:
    supabase_url: str = ""
    supabase_key: str = ""
    admin_secret: str = ""
    auth_mode: str = "secret"
    phone_country_code: str = "+91"
    seed_path: str = "data/seed.json"
    log_level: str = "INFO"
    currency: str = "₹"

    @property
    def demo_mode(self) -> bool:
        return not (self.supabase_url and self.supabase_key)


def _lookup(secrets: Mapping[str, Any], key: str, default: str) -> str:
    # secrets first, then the environment (which .env has been merged into)
    value = secrets.get(key)
    if value in (None, ""):
        value = os.environ.get(key)
    return str(value) if value not in (None, "") else default


def load_settings(secrets: Optional[Mapping[str, Any]] = None, env_file: Optional[str] = None) -> Settings:
    """Build settings from Streamlit secrets, the environment and a .env file."""
    load_dotenv(env_file)
    secrets = secrets if secrets is not None else {}
    defaults = Settings()

    auth_mode = _lookup(secrets, "AUTH_MODE", defaults.auth_mode).lower()
    if auth_mode not in AUTH_MODES:
        raise ValueError(f"AUTH_MODE must be one of {AUTH_MODES}, got {auth_mode!r}")

    return Settings(
        supabase_url=_lookup(secrets, "SUPABASE_URL", defaults.supabase_url),
        supabase_key=_lookup(secrets, "SUPABASE_KEY", defaults.supabase_key),
        admin_secret=_lookup(secrets, "ADMIN_SECRET", defaults.admin_secret),
        auth_mode=auth_mode,
        phone_country_code=_lookup(secrets, "PHONE_COUNTRY_CODE", defaults.phone_country_code),
        seed_path=_lookup(secrets, "SEED_PATH", defaults.seed_path),
        log_level=_lookup(secrets, "LOG_LEVEL", defaults.log_level).upper(),
        currency=_lookup(secrets, "CURRENCY", defaults.currency),
    )
