"""Interfaces the bot consumes from the user directory and the property repository.

``storage.memory_store.InMemoryStore`` and ``storage.supabase_store.SupabaseStore``
both satisfy the two protocols at once.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar

T = TypeVar("T")


class UserDirectory(Protocol):
    def find_by_chat_id(self, chat_id: str) -> Optional[Dict[str, Any]]: ...

    def create_user(self, chat_id: str, defaults: Optional[Dict[str, Any]] = None) -> Dict[str, Any]: ...

    def update_last_submission(self, chat_id: str, timestamp: datetime) -> None: ...

    def set_banned(self, chat_id: str, banned: bool) -> Optional[Dict[str, Any]]: ...

    def set_admin(self, chat_id: str, is_admin: bool) -> Optional[Dict[str, Any]]: ...


class PropertyRepository(Protocol):
    def create_property(self, record: Dict[str, Any]) -> Dict[str, Any]: ...

    def get_property(self, property_id: str) -> Optional[Dict[str, Any]]: ...

    def list_properties_by_status(self, status: str) -> List[Dict[str, Any]]: ...

    def list_properties_by_owner(self, owner_id: str) -> List[Dict[str, Any]]: ...

    def list_recent_properties(self, limit: int = 10) -> List[Dict[str, Any]]: ...

    def update_property_status(self, property_id: str, status: str) -> Optional[Dict[str, Any]]: ...


async def run_db_query(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking repository call in a worker thread so other senders keep moving."""
    return await asyncio.to_thread(func, *args, **kwargs)
