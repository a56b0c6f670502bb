from __future__ import annotations

from typing import Dict, Optional, Protocol

from .models import Draft


class DraftStore(Protocol):
    """Holds at most one in-flight draft per owner."""

    def get(self, owner_id: str) -> Optional[Draft]: ...

    def set(self, owner_id: str, draft: Draft) -> None: ...

    def clear(self, owner_id: str) -> None: ...


class InMemoryDraftStore:
    """Process-local drafts. Nothing survives a restart and nothing expires."""

    def __init__(self) -> None:
        self._drafts: Dict[str, Draft] = {}

    def get(self, owner_id: str) -> Optional[Draft]:
        return self._drafts.get(str(owner_id))

    def set(self, owner_id: str, draft: Draft) -> None:
        if draft.owner_id != str(owner_id):
            raise ValueError(f"Draft owned by {draft.owner_id} cannot be stored under {owner_id}")
        self._drafts[str(owner_id)] = draft

    def clear(self, owner_id: str) -> None:
        self._drafts.pop(str(owner_id), None)

    def __len__(self) -> int:
        return len(self._drafts)

    def __contains__(self, owner_id: object) -> bool:
        return str(owner_id) in self._drafts
