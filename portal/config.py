import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Locate .env in the project root
env_path = Path(__file__).resolve().parent.parent / '.env'
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    supabase_url: str | None
    supabase_key: str | None
    dataset_url: str
    scope_url: str
    documents_bucket: str
    signed_url_ttl: int
    eta_field: str | None
    upcoming_days: int
    eta_dayfirst: bool
    http_timeout: float
    session_ttl: float
    session_idle_timeout: float

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY"),
            dataset_url=os.getenv("PORTAL_DATASET_URL", "data/shipments.json"),
            scope_url=os.getenv("PORTAL_SCOPE_URL", "data/email-consignee-map.json"),
            documents_bucket=os.getenv("PORTAL_DOCUMENTS_BUCKET", "documents"),
            signed_url_ttl=int(os.getenv("PORTAL_SIGNED_URL_TTL", "3600")),
            eta_field=os.getenv("PORTAL_ETA_FIELD") or None,
            upcoming_days=int(os.getenv("PORTAL_UPCOMING_DAYS", "7")),
            eta_dayfirst=_env_bool("PORTAL_ETA_DAYFIRST", True),
            http_timeout=float(os.getenv("PORTAL_HTTP_TIMEOUT", "15")),
            session_ttl=float(os.getenv("PORTAL_SESSION_TTL", "300")),
            session_idle_timeout=float(os.getenv("PORTAL_SESSION_IDLE_TIMEOUT", "3600")),
        )


def get_settings() -> Settings:
    return Settings.from_env()
