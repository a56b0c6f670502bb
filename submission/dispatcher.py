"""Routes inbound bot events to the submission flow and the moderation handlers."""

from __future__ import annotations

import asyncio
import weakref
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from media.cloudinary_host import ImageHost
from telemetry.logging_utils import get_logger

from . import flow, messages
from .admin import ModerationHandlers
from .models import (
    CallbackAction,
    Command,
    Draft,
    Image,
    InboundEvent,
    Outbound,
    PromptKeyboard,
    Reply,
    Step,
    Text,
)
from .repositories import PropertyRepository, UserDirectory, run_db_query
from .state import DraftStore

logger = get_logger(__name__)

# Commands that silently discard an in-flight draft before their own handler runs.
RESET_COMMANDS = frozenset(
    {"start", "help", "my_properties", "pending_properties", "all_properties", "ban_user", "unban_user"}
)

CommandHandler = Callable[[Command], Awaitable[List[Outbound]]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Dispatcher:
    """Handles one inbound event at a time per sender.

    Events from the same sender are serialized on a per-sender lock, so the
    draft store's get/set/clear sequence for that sender is atomic even when
    the transport processes updates concurrently.
    """

    def __init__(
        self,
        *,
        users: UserDirectory,
        properties: PropertyRepository,
        drafts: DraftStore,
        image_host: ImageHost,
        admin_secret_code: Optional[str] = None,
        webapp_url: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.users = users
        self.properties = properties
        self.drafts = drafts
        self.image_host = image_host
        self.clock = clock
        self.moderation = ModerationHandlers(
            users, properties, admin_secret_code=admin_secret_code, webapp_url=webapp_url
        )
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._commands: Dict[str, CommandHandler] = {
            "add_property": self._add_property,
            "cancel": self._cancel,
            "done": self._done,
            "start": self.moderation.start,
            "help": self.moderation.help,
            "my_properties": self.moderation.my_properties,
            "pending_properties": self.moderation.pending_properties,
            "all_properties": self.moderation.all_properties,
            "ban_user": self.moderation.ban_user,
            "unban_user": self.moderation.unban_user,
            "make_admin": self.moderation.make_admin,
        }

    def _lock_for(self, owner_id: str) -> asyncio.Lock:
        lock = self._locks.get(owner_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[owner_id] = lock
        return lock

    async def handle(self, event: InboundEvent) -> List[Outbound]:
        owner_id = str(event.sender_id)
        try:
            async with self._lock_for(owner_id):
                return await self._route(event)
        except Exception:
            # Draft contents are whatever the failing step left behind.
            logger.exception("dispatch_failed", extra={"owner_id": owner_id, "event": type(event).__name__})
            return [Reply(owner_id, messages.GENERIC_ERROR)]

    async def _route(self, event: InboundEvent) -> List[Outbound]:
        if isinstance(event, Command):
            return await self._on_command(event)
        if isinstance(event, Text):
            return await self._on_text(event)
        if isinstance(event, Image):
            return await self._on_image(event)
        if isinstance(event, CallbackAction):
            return await self.moderation.on_callback(event)
        raise TypeError(f"Unsupported inbound event {type(event).__name__}")

    # Commands -------------------------------------------------------------
    async def _on_command(self, event: Command) -> List[Outbound]:
        owner_id = event.sender_id
        name = event.name.lower()
        logger.info("command_received", extra={"owner_id": owner_id, "command": name})
        if name in RESET_COMMANDS and self.drafts.get(owner_id) is not None:
            self.drafts.clear(owner_id)
            logger.info("draft_reset", extra={"owner_id": owner_id, "command": name})
        handler = self._commands.get(name)
        if handler is None:
            return [Reply(owner_id, messages.UNKNOWN_COMMAND.format(command=f"/{event.name}"))]
        return await handler(event)

    async def _add_property(self, event: Command) -> List[Outbound]:
        owner_id = event.sender_id
        user = await run_db_query(self.users.find_by_chat_id, owner_id)
        if not user:
            user = await run_db_query(self.users.create_user, owner_id, {"name": event.sender_name or "User"})
            logger.info("user_registered", extra={"owner_id": owner_id})
        result = flow.begin_submission(owner_id, user, self.clock())
        if result.draft is None:
            logger.info("submission_refused", extra={"owner_id": owner_id, "reason": result.reply})
        return self._apply(owner_id, result)

    async def _cancel(self, event: Command) -> List[Outbound]:
        return self._apply(event.sender_id, flow.cancel(self.drafts.get(event.sender_id)))

    async def _done(self, event: Command) -> List[Outbound]:
        owner_id = event.sender_id
        draft = self.drafts.get(owner_id)
        result = flow.request_done(draft)
        if result.finalize and draft is not None:
            return await self._finalize(draft)
        return self._apply(owner_id, result)

    # Messages -------------------------------------------------------------
    async def _on_text(self, event: Text) -> List[Outbound]:
        owner_id = event.sender_id
        draft = self.drafts.get(owner_id)
        if draft is None:
            return []
        result = flow.apply_text(draft, event.body)
        if result.finalize:
            return await self._finalize(draft)
        return self._apply(owner_id, result)

    async def _on_image(self, event: Image) -> List[Outbound]:
        owner_id = event.sender_id
        draft = self.drafts.get(owner_id)
        if draft is None or draft.step is not Step.IMAGES:
            return []
        if not flow.can_accept_image(draft):
            return [Reply(owner_id, messages.IMAGE_LIMIT_REACHED)]
        try:
            url = await self.image_host.upload(event.attachment_ref)
        except Exception:
            logger.exception("image_upload_failed", extra={"owner_id": owner_id})
            return [Reply(owner_id, messages.IMAGE_UPLOAD_FAILED)]
        return self._apply(owner_id, flow.add_image(draft, url))

    # Helpers --------------------------------------------------------------
    async def _finalize(self, draft: Draft) -> List[Outbound]:
        owner_id = draft.owner_id
        now = self.clock()
        try:
            prop = await run_db_query(self.properties.create_property, flow.build_property_record(draft, now))
        except Exception:
            logger.exception("property_save_failed", extra={"owner_id": owner_id})
            return [Reply(owner_id, messages.SAVE_FAILED)]
        self.drafts.clear(owner_id)
        # The property row already exists; a failure here only leaves the cooldown stale.
        try:
            await run_db_query(self.users.update_last_submission, owner_id, now)
        except Exception:
            logger.exception("last_submission_update_failed", extra={"owner_id": owner_id})
        logger.info(
            "property_submitted",
            extra={"owner_id": owner_id, "property_id": prop.get("id"), "images": len(draft.fields.images)},
        )
        return [Reply(owner_id, messages.SUBMITTED)]

    def _apply(self, owner_id: str, result: flow.StepResult) -> List[Outbound]:
        if result.changed:
            if result.draft is None:
                self.drafts.clear(owner_id)
            else:
                self.drafts.set(owner_id, result.draft)
                logger.debug("draft_advanced", extra={"owner_id": owner_id, "step": result.draft.step.value})
        if result.options:
            return [PromptKeyboard(owner_id, result.reply, result.options)]
        return [Reply(owner_id, result.reply)]
