"""Translate Telegram updates into the bot's inbound events."""

from __future__ import annotations

from typing import Optional

from telegram import Update

from submission.models import CallbackAction, Command, Image, InboundEvent, Text


def parse_command(text: str) -> Optional[tuple]:
    """Split "/Name@bot rest of line" into ("name", "rest of line"); names are lower-cased."""
    if not text or not text.startswith("/"):
        return None
    parts = text.split(maxsplit=1)
    name = parts[0][1:].split("@", 1)[0].lower()
    if not name:
        return None
    return name, (parts[1].strip() if len(parts) > 1 else "")


def event_from_update(update: Update) -> Optional[InboundEvent]:
    user = update.effective_user
    if user is None:
        return None
    sender_id = str(user.id)

    query = update.callback_query
    if query is not None:
        action_id, _, payload = (query.data or "").partition(":")
        return CallbackAction(action_id=action_id, payload=payload, sender_id=sender_id)

    message = update.message
    if message is None:
        return None
    if message.photo:
        # Telegram lists sizes smallest first.
        return Image(attachment_ref=message.photo[-1].file_id, sender_id=sender_id)
    if message.text is None:
        return None
    command = parse_command(message.text)
    if command is not None:
        name, args_text = command
        return Command(name=name, args_text=args_text, sender_id=sender_id, sender_name=user.first_name)
    return Text(body=message.text, sender_id=sender_id)
