"""Wire settings, stores, the image host and the Telegram application together."""

from __future__ import annotations

from typing import Optional, Union

from telegram import Bot
from telegram.ext import Application

from media.cloudinary_host import CloudinaryImageHost, ImageHost
from settings import Settings
from storage.memory_store import InMemoryStore
from storage.supabase_store import SupabaseStore
from submission.dispatcher import Dispatcher
from submission.state import DraftStore, InMemoryDraftStore
from telegram_bot.app import TelegramAttachmentHost, build_application
from telemetry.logging_utils import get_logger

logger = get_logger(__name__)

Store = Union[InMemoryStore, SupabaseStore]


def build_store(settings: Settings) -> Store:
    if settings.supabase_enabled:
        return SupabaseStore(settings.supabase_url, settings.supabase_service_role_key)
    logger.warning("supabase_not_configured", extra={"fallback": "memory"})
    return InMemoryStore()


def build_image_host(settings: Settings) -> CloudinaryImageHost:
    if not settings.cloudinary_enabled:
        logger.warning("cloudinary_not_configured")
    return CloudinaryImageHost(
        folder=settings.cloudinary_folder,
        cloudinary_url=settings.cloudinary_url,
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
    )


def build_dispatcher(
    settings: Settings,
    store: Store,
    image_host: ImageHost,
    drafts: Optional[DraftStore] = None,
) -> Dispatcher:
    return Dispatcher(
        users=store,
        properties=store,
        drafts=drafts if drafts is not None else InMemoryDraftStore(),
        image_host=image_host,
        admin_secret_code=settings.admin_secret_code,
        webapp_url=settings.webapp_url,
    )


def build_bot(settings: Settings, store: Store) -> Application:
    host = build_image_host(settings)

    def make_dispatcher(bot: Bot) -> Dispatcher:
        return build_dispatcher(settings, store, TelegramAttachmentHost(bot, host))

    return build_application(settings, make_dispatcher)
