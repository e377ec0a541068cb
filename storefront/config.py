import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


class Settings(BaseModel):
    database_url: str = "sqlite:///./storefront.db"
    jwt_secret: Optional[str] = None
    owner_open_id: Optional[str] = None
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    email_api_url: Optional[str] = None
    email_api_key: Optional[str] = None
    email_sender: str = "Möbelhaus <noreply@mobelhaus.at>"
    email_timeout_seconds: float = 10.0
    public_base_url: str = "http://localhost:3000"
    default_language: str = "de"
    log_level: str = "INFO"


def get_settings() -> Settings:
    """Read settings from the environment at call time."""
    values = {}
    for name in Settings.model_fields:
        value = os.getenv(name.upper())
        if value is not None:
            values[name] = value
    return Settings(**values)
