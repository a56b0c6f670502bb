from __future__ import annotations

import io
from typing import Callable, Iterable

from telegram import (
    Bot,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    MenuButtonWebApp,
    ReplyKeyboardMarkup,
    Update,
    WebAppInfo,
)
from telegram.error import TelegramError
from telegram.ext import Application, ContextTypes, TypeHandler

from media.cloudinary_host import ImageHost, ImageUploadError
from settings import Settings
from submission.dispatcher import Dispatcher
from submission.models import InlineButtons, Outbound, PromptKeyboard, Reply, WebAppMenu
from telemetry.logging_utils import get_logger

from .events import event_from_update

logger = get_logger(__name__)

DISPATCHER_KEY = "dispatcher"


class TelegramAttachmentHost:
    """Downloads a Telegram photo by file id and hands the bytes to the image host."""

    def __init__(self, bot: Bot, host: ImageHost) -> None:
        self.bot = bot
        self.host = host

    async def upload(self, ref: str) -> str:
        try:
            tg_file = await self.bot.get_file(ref)
            data = await tg_file.download_as_bytearray()
        except TelegramError as exc:
            raise ImageUploadError(f"Could not fetch Telegram file: {exc}") from exc
        return await self.host.upload(io.BytesIO(bytes(data)))


async def deliver(bot: Bot, outbound: Iterable[Outbound]) -> None:
    """Send each outbound event; one failed send does not stop the rest."""
    for item in outbound:
        try:
            if isinstance(item, Reply):
                await bot.send_message(chat_id=item.chat_id, text=item.text)
            elif isinstance(item, PromptKeyboard):
                keyboard = ReplyKeyboardMarkup(
                    [list(row) for row in item.options], one_time_keyboard=True, resize_keyboard=True
                )
                await bot.send_message(chat_id=item.chat_id, text=item.text, reply_markup=keyboard)
            elif isinstance(item, InlineButtons):
                keyboard = InlineKeyboardMarkup(
                    [[InlineKeyboardButton(label, callback_data=data) for label, data in row] for row in item.rows]
                )
                await bot.send_message(chat_id=item.chat_id, text=item.text, reply_markup=keyboard)
            elif isinstance(item, WebAppMenu):
                await bot.set_chat_menu_button(
                    chat_id=int(item.chat_id),
                    menu_button=MenuButtonWebApp(text=item.text, web_app=WebAppInfo(url=item.url)),
                )
            else:
                raise TypeError(f"Unsupported outbound event {type(item).__name__}")
        except TelegramError:
            logger.exception("telegram_send_failed", extra={"chat_id": item.chat_id, "kind": type(item).__name__})


async def on_update(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if update.callback_query is not None:
        await update.callback_query.answer()
    event = event_from_update(update)
    if event is None:
        return
    dispatcher: Dispatcher = context.application.bot_data[DISPATCHER_KEY]
    outbound = await dispatcher.handle(event)
    await deliver(context.bot, outbound)


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("telegram_update_failed", exc_info=context.error)


def build_application(settings: Settings, make_dispatcher: Callable[[Bot], Dispatcher]) -> Application:
    """Build the python-telegram-bot application.

    ``make_dispatcher`` is called with the application's bot and returns the
    dispatcher that every update is routed through.
    """
    if not settings.telegram_bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required to run the bot")
    builder = Application.builder().token(settings.telegram_bot_token)
    if settings.bot_concurrent_updates > 1:
        builder = builder.concurrent_updates(settings.bot_concurrent_updates)
    application = builder.build()
    application.bot_data[DISPATCHER_KEY] = make_dispatcher(application.bot)
    application.add_handler(TypeHandler(Update, on_update))
    application.add_error_handler(on_error)
    return application
