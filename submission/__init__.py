"""
Property submission bot core.

The draft store, the pure step transitions and the dispatcher that routes
inbound bot events. Transport (Telegram) and persistence (Supabase) are
plugged in from outside.
"""

from .dispatcher import RESET_COMMANDS, Dispatcher
from .models import (
    CallbackAction,
    Command,
    Draft,
    DraftFields,
    Image,
    InlineButtons,
    PromptKeyboard,
    Reply,
    Step,
    Text,
    WebAppMenu,
)
from .state import DraftStore, InMemoryDraftStore

__all__ = [
    "RESET_COMMANDS",
    "Dispatcher",
    "CallbackAction",
    "Command",
    "Draft",
    "DraftFields",
    "Image",
    "InlineButtons",
    "PromptKeyboard",
    "Reply",
    "Step",
    "Text",
    "WebAppMenu",
    "DraftStore",
    "InMemoryDraftStore",
]
