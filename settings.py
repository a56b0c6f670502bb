"""Environment-driven configuration for the bot and the HTTP server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or None


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = _env(name)
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    return max(value, minimum)


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: Optional[str] = None
    telegram_webhook_secret: Optional[str] = None
    telegram_webhook_url: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    cloudinary_url: Optional[str] = None
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "ile_properties"
    admin_secret_code: Optional[str] = None
    webapp_url: Optional[str] = None
    bot_concurrent_updates: int = 1
    log_level: str = "INFO"

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    @property
    def cloudinary_enabled(self) -> bool:
        if self.cloudinary_url:
            return True
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        return cls(
            telegram_bot_token=_env("TELEGRAM_BOT_TOKEN"),
            telegram_webhook_secret=_env("TELEGRAM_WEBHOOK_SECRET"),
            telegram_webhook_url=_env("TELEGRAM_WEBHOOK_URL"),
            supabase_url=_env("SUPABASE_URL"),
            supabase_service_role_key=_env("SUPABASE_SERVICE_ROLE_KEY"),
            cloudinary_url=_env("CLOUDINARY_URL"),
            cloudinary_cloud_name=_env("CLOUDINARY_CLOUD_NAME"),
            cloudinary_api_key=_env("CLOUDINARY_API_KEY"),
            cloudinary_api_secret=_env("CLOUDINARY_API_SECRET"),
            cloudinary_folder=_env("CLOUDINARY_FOLDER") or "ile_properties",
            admin_secret_code=_env("ADMIN_SECRET_CODE"),
            webapp_url=_env("WEBAPP_URL"),
            bot_concurrent_updates=_env_int("BOT_CONCURRENT_UPDATES", 1, 1),
            log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        )
