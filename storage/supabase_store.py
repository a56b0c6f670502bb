from __future__ import annotations

import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx
from postgrest import APIError

from supabase import Client, create_client

from storage.errors import StoreError
from storage.memory_store import PROPERTY_SORTS, PROPERTY_STATUSES
from telemetry.logging_utils import get_logger

logger = get_logger(__name__)

USERS_TABLE = "users"
PROPERTIES_TABLE = "properties"
UNIQUE_VIOLATION = "23505"


def _data(resp: Any) -> Any:
    # maybe_single() yields no response object at all when nothing matched.
    return getattr(resp, "data", None) if resp is not None else None


class SupabaseStore:
    backend = "supabase"

    def __init__(self, url: str, key: str) -> None:
        self.client: Client = create_client(url, key)
        self._max_retries = 3
        self._retry_backoff_seconds = 0.25

    def _table(self, name: str):
        return self.client.table(name)

    def _with_retry(self, fn: Callable[[], Any]) -> Any:
        delay = self._retry_backoff_seconds
        for attempt in range(self._max_retries):
            try:
                return fn()
            except (httpx.RemoteProtocolError, httpx.WriteError, APIError) as exc:
                if attempt >= self._max_retries - 1:
                    raise
                logger.warning("supabase_retry", extra={"attempt": attempt + 1, "error": str(exc)[:200]})
                time.sleep(delay)
                delay *= 2

    # Users ----------------------------------------------------------------
    def find_by_chat_id(self, chat_id: str) -> Optional[Dict[str, Any]]:
        resp = self._with_retry(
            lambda: self._table(USERS_TABLE)
            .select("*")
            .eq("telegram_chat_id", str(chat_id))
            .maybe_single()
            .execute()
        )
        return _data(resp)

    def create_user(self, chat_id: str, defaults: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        chat_id = str(chat_id)
        defaults = defaults or {}
        user = {
            "telegram_chat_id": chat_id,
            "name": defaults.get("name") or "User",
            "email": defaults.get("email") or f"telegram_{chat_id}@placeholder.com",
            "is_admin": bool(defaults.get("is_admin", False)),
            "is_banned": bool(defaults.get("is_banned", False)),
        }
        resp = self._with_retry(lambda: self._table(USERS_TABLE).insert(user).execute())
        if not resp.data:
            raise StoreError("Failed to insert user")
        return resp.data[0]

    def update_last_submission(self, chat_id: str, timestamp: datetime) -> None:
        self._with_retry(
            lambda: self._table(USERS_TABLE)
            .update({"last_submission_at": timestamp.isoformat()})
            .eq("telegram_chat_id", str(chat_id))
            .execute()
        )

    def set_banned(self, chat_id: str, banned: bool) -> Optional[Dict[str, Any]]:
        return self._update_user(chat_id, {"is_banned": banned})

    def set_admin(self, chat_id: str, is_admin: bool) -> Optional[Dict[str, Any]]:
        return self._update_user(chat_id, {"is_admin": is_admin})

    def _update_user(self, chat_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        resp = self._with_retry(
            lambda: self._table(USERS_TABLE).update(changes).eq("telegram_chat_id", str(chat_id)).execute()
        )
        rows = resp.data or []
        return rows[0] if rows else None

    # Properties -----------------------------------------------------------
    def create_property(self, record: Dict[str, Any]) -> Dict[str, Any]:
        payload = dict(record)
        payload["owner_id"] = str(payload["owner_id"])
        payload["images"] = list(payload.get("images") or [])
        submitted_at = payload.get("submitted_at")
        if isinstance(submitted_at, datetime):
            payload["submitted_at"] = submitted_at.isoformat()
        payload.setdefault("status", "pending")
        # A client-side id turns a replayed insert into a key conflict instead of a second row.
        payload.setdefault("id", str(uuid.uuid4()))

        def _insert() -> Any:
            try:
                return self._table(PROPERTIES_TABLE).insert(payload).execute()
            except APIError as exc:
                if exc.code == UNIQUE_VIOLATION:
                    return None
                raise

        resp = self._with_retry(_insert)
        if resp is None:
            existing = self.get_property(payload["id"])
            if not existing:
                raise StoreError(f"Property {payload['id']} conflicted but could not be read back")
            logger.info("property_insert_replayed", extra={"property_id": payload["id"]})
            return existing
        if not resp.data:
            raise StoreError("Failed to store property")
        return resp.data[0]

    def get_property(self, property_id: str) -> Optional[Dict[str, Any]]:
        resp = self._with_retry(
            lambda: self._table(PROPERTIES_TABLE).select("*").eq("id", property_id).maybe_single().execute()
        )
        return _data(resp)

    def list_properties_by_status(self, status: str) -> List[Dict[str, Any]]:
        resp = self._with_retry(
            lambda: self._table(PROPERTIES_TABLE)
            .select("*")
            .eq("status", status)
            .order("submitted_at", desc=False)
            .execute()
        )
        return resp.data or []

    def list_properties_by_owner(self, owner_id: str) -> List[Dict[str, Any]]:
        resp = self._with_retry(
            lambda: self._table(PROPERTIES_TABLE)
            .select("*")
            .eq("owner_id", str(owner_id))
            .order("submitted_at", desc=True)
            .execute()
        )
        return resp.data or []

    def list_recent_properties(self, limit: int = 10) -> List[Dict[str, Any]]:
        resp = self._with_retry(
            lambda: self._table(PROPERTIES_TABLE).select("*").order("submitted_at", desc=True).limit(limit).execute()
        )
        return resp.data or []

    def update_property_status(self, property_id: str, status: str) -> Optional[Dict[str, Any]]:
        """Move a pending property to ``status``; the pending filter makes the change one-way."""
        if status not in PROPERTY_STATUSES or status == "pending":
            raise ValueError(f"Unsupported status transition to {status!r}")
        resp = self._with_retry(
            lambda: self._table(PROPERTIES_TABLE)
            .update({"status": status})
            .eq("id", property_id)
            .eq("status", "pending")
            .execute()
        )
        rows = resp.data or []
        return rows[0] if rows else None

    def search_approved_properties(
        self,
        *,
        location: Optional[str] = None,
        property_type: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort: str = "newest",
        offset: int = 0,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        query = self._table(PROPERTIES_TABLE).select("*").eq("status", "approved")
        if location:
            query = query.ilike("location", f"%{location}%")
        if property_type:
            query = query.eq("property_type", property_type)
        if min_price is not None:
            query = query.gte("price", min_price)
        if max_price is not None:
            query = query.lte("price", max_price)
        column, descending = PROPERTY_SORTS.get(sort, PROPERTY_SORTS["newest"])
        query = query.order(column, desc=descending).range(offset, offset + limit - 1)
        resp = self._with_retry(lambda: query.execute())
        return resp.data or []

    def ping(self) -> bool:
        try:
            self._table(USERS_TABLE).select("telegram_chat_id").limit(1).execute()
        except (httpx.HTTPError, APIError):
            logger.warning("supabase_ping_failed", exc_info=True)
            return False
        return True
