"""Draft, inbound event and outbound event types for the submission bot."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timedelta
from enum import Enum
from typing import Optional, Tuple, Union


class Step(str, Enum):
    NONE = "none"
    NAME = "name"
    LOCATION = "location"
    PRICE = "price"
    TYPE = "type"
    DESCRIPTION = "description"
    IMAGES = "images"
    DONE = "done"
    CANCELLED = "cancelled"


# NONE, DONE and CANCELLED are never stored: an owner in one of them simply has no draft.

PROPERTY_TYPES: Tuple[str, ...] = ("Apartment", "House", "Land", "Commercial")
TOKEN_UNIT_PRICE = 1500
MAX_IMAGES = 5
MAX_TEXT_LENGTH = 1000
SUBMISSION_COOLDOWN = timedelta(minutes=10)


@dataclass(frozen=True)
class DraftFields:
    name: Optional[str] = None
    location: Optional[str] = None
    price: Optional[float] = None
    tokens: Optional[int] = None
    property_type: Optional[str] = None
    description: Optional[str] = None
    images: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Draft:
    owner_id: str
    step: Step = Step.NAME
    fields: DraftFields = field(default_factory=DraftFields)

    def advance(self, step: Step, **changes) -> "Draft":
        return replace(self, step=step, fields=replace(self.fields, **changes))


# Inbound -------------------------------------------------------------------


@dataclass(frozen=True)
class Command:
    name: str
    args_text: str
    sender_id: str
    sender_name: Optional[str] = None


@dataclass(frozen=True)
class Text:
    body: str
    sender_id: str


@dataclass(frozen=True)
class Image:
    attachment_ref: str
    sender_id: str


@dataclass(frozen=True)
class CallbackAction:
    action_id: str
    payload: str
    sender_id: str


InboundEvent = Union[Command, Text, Image, CallbackAction]


# Outbound ------------------------------------------------------------------


@dataclass(frozen=True)
class Reply:
    chat_id: str
    text: str


@dataclass(frozen=True)
class PromptKeyboard:
    chat_id: str
    text: str
    options: Tuple[Tuple[str, ...], ...]


@dataclass(frozen=True)
class InlineButtons:
    chat_id: str
    text: str
    # Each button is (label, callback data).
    rows: Tuple[Tuple[Tuple[str, str], ...], ...]


@dataclass(frozen=True)
class WebAppMenu:
    chat_id: str
    text: str
    url: str


Outbound = Union[Reply, PromptKeyboard, InlineButtons, WebAppMenu]
