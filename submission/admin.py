"""Account and moderation commands: /start, /help, listings, approve/reject, bans."""

from __future__ import annotations

import hmac
from typing import Any, Dict, List, Optional, Tuple

from telemetry.logging_utils import get_logger

from . import messages
from .models import CallbackAction, Command, InlineButtons, Outbound, PromptKeyboard, Reply, WebAppMenu
from .repositories import PropertyRepository, UserDirectory, run_db_query

logger = get_logger(__name__)

START_KEYBOARD = (("/add_property", "/my_properties"), ("/help",))
RECENT_LIMIT = 10

APPROVE_ACTION = "approve_property"
REJECT_ACTION = "reject_property"
NEXT_ACTION = "next_property"


class ModerationHandlers:
    """Handlers that read or change users and properties outside the submission flow.

    Every handler looks the caller up again in the directory; ban and admin
    flags are never cached between events.
    """

    def __init__(
        self,
        users: UserDirectory,
        properties: PropertyRepository,
        *,
        admin_secret_code: Optional[str] = None,
        webapp_url: Optional[str] = None,
    ) -> None:
        self.users = users
        self.properties = properties
        self.admin_secret_code = admin_secret_code
        self.webapp_url = webapp_url

    async def _require_admin(self, chat_id: str) -> Tuple[Optional[Dict[str, Any]], List[Outbound]]:
        user = await run_db_query(self.users.find_by_chat_id, chat_id)
        if not user:
            return None, [Reply(chat_id, messages.NOT_REGISTERED)]
        if not user.get("is_admin"):
            logger.info("admin_access_denied", extra={"owner_id": chat_id})
            return None, [Reply(chat_id, messages.ADMIN_REQUIRED)]
        return user, []

    # Account --------------------------------------------------------------
    async def start(self, event: Command) -> List[Outbound]:
        chat_id = event.sender_id
        user = await run_db_query(self.users.find_by_chat_id, chat_id)
        if not user:
            user = await run_db_query(self.users.create_user, chat_id, {"name": event.sender_name or "User"})
            logger.info("user_registered", extra={"owner_id": chat_id})
        name = user.get("name") or event.sender_name or "there"
        replies: List[Outbound] = []
        if self.webapp_url:
            replies.append(WebAppMenu(chat_id, messages.WEBAPP_MENU_TEXT, self.webapp_url))
        replies.append(PromptKeyboard(chat_id, messages.WELCOME.format(name=name), START_KEYBOARD))
        return replies

    async def help(self, event: Command) -> List[Outbound]:
        return [Reply(event.sender_id, messages.HELP)]

    async def my_properties(self, event: Command) -> List[Outbound]:
        chat_id = event.sender_id
        if not await run_db_query(self.users.find_by_chat_id, chat_id):
            return [Reply(chat_id, messages.NOT_REGISTERED)]
        props = await run_db_query(self.properties.list_properties_by_owner, chat_id)
        if not props:
            return [Reply(chat_id, messages.NO_OWN_PROPERTIES)]
        return [Reply(chat_id, messages.format_owner_listing(props))]

    async def make_admin(self, event: Command) -> List[Outbound]:
        chat_id = event.sender_id
        args = event.args_text.split()
        supplied = args[0] if args else ""
        expected = self.admin_secret_code or ""
        if not expected or not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
            logger.warning("make_admin_rejected", extra={"owner_id": chat_id})
            return [Reply(chat_id, messages.INVALID_ADMIN_SECRET)]
        if await run_db_query(self.users.find_by_chat_id, chat_id):
            await run_db_query(self.users.set_admin, chat_id, True)
            logger.info("admin_granted", extra={"owner_id": chat_id})
            return [Reply(chat_id, messages.ADMIN_GRANTED)]
        await run_db_query(
            self.users.create_user,
            chat_id,
            {"name": event.sender_name or "Admin", "email": f"admin_{chat_id}@ile.app", "is_admin": True},
        )
        logger.info("admin_registered", extra={"owner_id": chat_id})
        return [Reply(chat_id, messages.ADMIN_REGISTERED)]

    # Admin ----------------------------------------------------------------
    async def pending_properties(self, event: Command) -> List[Outbound]:
        chat_id = event.sender_id
        _, denied = await self._require_admin(chat_id)
        if denied:
            return denied
        pending = await run_db_query(self.properties.list_properties_by_status, "pending")
        if not pending:
            return [Reply(chat_id, messages.NO_PENDING)]
        prop = pending[0]
        rows = (
            (("✅ Approve", f"{APPROVE_ACTION}:{prop['id']}"), ("❌ Reject", f"{REJECT_ACTION}:{prop['id']}")),
            (("⏭️ Next Property", NEXT_ACTION),),
        )
        return [InlineButtons(chat_id, messages.format_pending_property(prop), rows)]

    async def all_properties(self, event: Command) -> List[Outbound]:
        chat_id = event.sender_id
        _, denied = await self._require_admin(chat_id)
        if denied:
            return denied
        props = await run_db_query(self.properties.list_recent_properties, RECENT_LIMIT)
        if not props:
            return [Reply(chat_id, messages.NO_PROPERTIES)]
        return [Reply(chat_id, messages.format_recent_listing(props))]

    async def ban_user(self, event: Command) -> List[Outbound]:
        return await self._set_ban(event, banned=True)

    async def unban_user(self, event: Command) -> List[Outbound]:
        return await self._set_ban(event, banned=False)

    async def _set_ban(self, event: Command, *, banned: bool) -> List[Outbound]:
        chat_id = event.sender_id
        _, denied = await self._require_admin(chat_id)
        if denied:
            return denied
        args = event.args_text.split()
        if not args:
            return [Reply(chat_id, messages.BAN_USAGE if banned else messages.UNBAN_USAGE)]
        target = args[0]
        if not await run_db_query(self.users.set_banned, target, banned):
            return [Reply(chat_id, messages.USER_NOT_FOUND)]
        logger.info("user_ban_changed", extra={"owner_id": chat_id, "target_id": target, "banned": banned})
        template = messages.USER_BANNED if banned else messages.USER_UNBANNED
        return [Reply(chat_id, template.format(user_id=target))]

    # Inline buttons -------------------------------------------------------
    async def on_callback(self, event: CallbackAction) -> List[Outbound]:
        chat_id = event.sender_id
        if event.action_id == NEXT_ACTION:
            return [Reply(chat_id, messages.NEXT_PROPERTY)]
        if event.action_id not in (APPROVE_ACTION, REJECT_ACTION):
            logger.warning("unknown_callback", extra={"owner_id": chat_id, "action": event.action_id})
            return []
        _, denied = await self._require_admin(chat_id)
        if denied:
            return denied
        approve = event.action_id == APPROVE_ACTION
        status = "approved" if approve else "rejected"
        prop = await run_db_query(self.properties.update_property_status, event.payload, status)
        if not prop:
            return [Reply(chat_id, messages.PROPERTY_ALREADY_PROCESSED)]
        logger.info(
            "property_moderated",
            extra={"owner_id": chat_id, "property_id": prop["id"], "status": prop["status"]},
        )
        name = prop.get("name")
        replies: List[Outbound] = [
            Reply(chat_id, (messages.APPROVED_ADMIN if approve else messages.REJECTED_ADMIN).format(name=name)),
        ]
        if prop.get("owner_id"):
            owner_text = messages.APPROVED_OWNER if approve else messages.REJECTED_OWNER
            replies.append(Reply(str(prop["owner_id"]), owner_text.format(name=name)))
        if await run_db_query(self.properties.list_properties_by_status, "pending"):
            replies.append(Reply(chat_id, messages.MORE_PENDING))
        return replies
