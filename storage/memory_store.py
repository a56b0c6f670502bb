from __future__ import annotations

import threading
import uuid
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from storage.errors import StoreError

PROPERTY_STATUSES = ("pending", "approved", "rejected")

PROPERTY_SORTS = {
    "newest": ("submitted_at", True),
    "oldest": ("submitted_at", False),
    "priceAsc": ("price", False),
    "priceDesc": ("price", True),
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class InMemoryStore:
    """Demo-mode store used when Supabase is unavailable."""

    backend = "memory"

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}
        self.properties: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    # Users ----------------------------------------------------------------
    def find_by_chat_id(self, chat_id: str) -> Optional[Dict[str, Any]]:
        user = self.users.get(str(chat_id))
        return deepcopy(user) if user else None

    def create_user(self, chat_id: str, defaults: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        chat_id = str(chat_id)
        defaults = defaults or {}
        user = {
            "id": str(uuid.uuid4()),
            "telegram_chat_id": chat_id,
            "name": defaults.get("name") or "User",
            "email": defaults.get("email") or f"telegram_{chat_id}@placeholder.com",
            "is_admin": bool(defaults.get("is_admin", False)),
            "is_banned": bool(defaults.get("is_banned", False)),
            "last_submission_at": _as_iso(defaults.get("last_submission_at")),
            "created_at": _now_iso(),
        }
        with self._lock:
            if chat_id in self.users:
                raise StoreError(f"User {chat_id} already exists")
            self.users[chat_id] = user
        return deepcopy(user)

    def update_last_submission(self, chat_id: str, timestamp: datetime) -> None:
        user = self.users.get(str(chat_id))
        if user:
            user["last_submission_at"] = _as_iso(timestamp)

    def set_banned(self, chat_id: str, banned: bool) -> Optional[Dict[str, Any]]:
        return self._update_user(chat_id, {"is_banned": banned})

    def set_admin(self, chat_id: str, is_admin: bool) -> Optional[Dict[str, Any]]:
        return self._update_user(chat_id, {"is_admin": is_admin})

    def _update_user(self, chat_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        user = self.users.get(str(chat_id))
        if not user:
            return None
        user.update(changes)
        return deepcopy(user)

    # Properties -----------------------------------------------------------
    def create_property(self, record: Dict[str, Any]) -> Dict[str, Any]:
        prop = {
            "id": record.get("id") or str(uuid.uuid4()),
            "owner_id": str(record["owner_id"]),
            "name": record["name"],
            "location": record["location"],
            "price": record["price"],
            "tokens": record["tokens"],
            "property_type": record["property_type"],
            "description": record["description"],
            "images": list(record.get("images") or []),
            "submitted_at": _as_iso(record.get("submitted_at")) or _now_iso(),
            "status": record.get("status", "pending"),
        }
        self.properties[prop["id"]] = prop
        return deepcopy(prop)

    def get_property(self, property_id: str) -> Optional[Dict[str, Any]]:
        prop = self.properties.get(property_id)
        return deepcopy(prop) if prop else None

    def list_properties_by_status(self, status: str) -> List[Dict[str, Any]]:
        props = [p for p in self.properties.values() if p["status"] == status]
        props.sort(key=lambda p: p.get("submitted_at") or "")
        return deepcopy(props)

    def list_properties_by_owner(self, owner_id: str) -> List[Dict[str, Any]]:
        props = [p for p in self.properties.values() if p["owner_id"] == str(owner_id)]
        props.sort(key=lambda p: p.get("submitted_at") or "", reverse=True)
        return deepcopy(props)

    def list_recent_properties(self, limit: int = 10) -> List[Dict[str, Any]]:
        props = sorted(self.properties.values(), key=lambda p: p.get("submitted_at") or "", reverse=True)
        return deepcopy(props[:limit])

    def update_property_status(self, property_id: str, status: str) -> Optional[Dict[str, Any]]:
        """Move a pending property to ``status``; anything not pending is left alone."""
        if status not in PROPERTY_STATUSES or status == "pending":
            raise ValueError(f"Unsupported status transition to {status!r}")
        with self._lock:
            prop = self.properties.get(property_id)
            if not prop or prop["status"] != "pending":
                return None
            prop["status"] = status
            return deepcopy(prop)

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
        props = [p for p in self.properties.values() if p["status"] == "approved"]
        if location:
            needle = location.lower()
            props = [p for p in props if needle in (p.get("location") or "").lower()]
        if property_type:
            props = [p for p in props if p.get("property_type") == property_type]
        if min_price is not None:
            props = [p for p in props if p["price"] >= min_price]
        if max_price is not None:
            props = [p for p in props if p["price"] <= max_price]
        key, descending = PROPERTY_SORTS.get(sort, PROPERTY_SORTS["newest"])
        props.sort(key=lambda p: p.get(key) or 0, reverse=descending)
        return deepcopy(props[offset : offset + limit])

    # Health ---------------------------------------------------------------
    def ping(self) -> bool:
        return True
