"""Telegram transport for the property submission bot."""

from .app import TelegramAttachmentHost, build_application, deliver
from .events import event_from_update

__all__ = ["TelegramAttachmentHost", "build_application", "deliver", "event_from_update"]
