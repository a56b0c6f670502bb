"""Pure step transitions for the property submission conversation.

Every function takes the current draft (and input) and returns a
``StepResult``; none of them touch a store, the network or the clock.
The dispatcher owns the read-modify-write against the draft store and the
repository writes that finalization needs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from . import messages
from .models import (
    MAX_IMAGES,
    MAX_TEXT_LENGTH,
    PROPERTY_TYPES,
    SUBMISSION_COOLDOWN,
    TOKEN_UNIT_PRICE,
    Draft,
    Step,
)

TYPE_KEYBOARD: Tuple[Tuple[str, ...], ...] = tuple((kind,) for kind in PROPERTY_TYPES)


@dataclass(frozen=True)
class StepResult:
    draft: Optional[Draft]
    reply: str
    options: Tuple[Tuple[str, ...], ...] = ()
    finalize: bool = False
    changed: bool = True


def _stay(draft: Optional[Draft], reply: str, options: Tuple[Tuple[str, ...], ...] = ()) -> StepResult:
    return StepResult(draft=draft, reply=reply, options=options, changed=False)


def _as_utc(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        when = value
    else:
        try:
            when = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when


def tokens_for_price(price: float) -> int:
    return math.floor(price / TOKEN_UNIT_PRICE)


def parse_price(text: str) -> Optional[float]:
    """Return a positive finite price, or None when the input is not one."""
    cleaned = (text or "").strip().replace(",", "")
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return int(value) if value.is_integer() else value


def in_cooldown(user: Optional[Dict[str, Any]], now: datetime) -> bool:
    last = _as_utc((user or {}).get("last_submission_at"))
    if last is None:
        return False
    return _as_utc(now) - last < SUBMISSION_COOLDOWN


def begin_submission(owner_id: str, user: Optional[Dict[str, Any]], now: datetime) -> StepResult:
    if user and user.get("is_banned"):
        return _stay(None, messages.BANNED)
    if in_cooldown(user, now):
        return _stay(None, messages.RATE_LIMITED)
    return StepResult(draft=Draft(owner_id=str(owner_id), step=Step.NAME), reply=messages.PROMPT_NAME)


def is_done_text(text: str) -> bool:
    return (text or "").strip().lower() == "done"


def _free_text(draft: Draft, text: str, step: Step, field_name: str, prompt: str, options=()) -> StepResult:
    value = (text or "").strip()
    if not value:
        return _stay(draft, messages.EMPTY_TEXT)
    if len(value) > MAX_TEXT_LENGTH:
        return _stay(draft, messages.TEXT_TOO_LONG.format(limit=MAX_TEXT_LENGTH))
    return StepResult(draft=draft.advance(step, **{field_name: value}), reply=prompt, options=options)


def apply_text(draft: Draft, text: str) -> StepResult:
    """Advance ``draft`` with a free-text message."""
    step = draft.step
    if step is Step.NAME:
        return _free_text(draft, text, Step.LOCATION, "name", messages.PROMPT_LOCATION)
    if step is Step.LOCATION:
        return _free_text(draft, text, Step.PRICE, "location", messages.PROMPT_PRICE)
    if step is Step.PRICE:
        price = parse_price(text)
        if price is None:
            return _stay(draft, messages.INVALID_PRICE)
        return StepResult(
            draft=draft.advance(Step.TYPE, price=price, tokens=tokens_for_price(price)),
            reply=messages.PROMPT_TYPE,
            options=TYPE_KEYBOARD,
        )
    if step is Step.TYPE:
        choice = (text or "").strip()
        if choice not in PROPERTY_TYPES:
            return _stay(draft, messages.INVALID_TYPE, TYPE_KEYBOARD)
        return StepResult(draft=draft.advance(Step.DESCRIPTION, property_type=choice), reply=messages.PROMPT_DESCRIPTION)
    if step is Step.DESCRIPTION:
        return _free_text(draft, text, Step.IMAGES, "description", messages.PROMPT_IMAGES)
    if step is Step.IMAGES:
        if is_done_text(text):
            return request_done(draft)
        return _stay(draft, messages.IMAGES_EXPECTED)
    raise ValueError(f"Draft for {draft.owner_id} is in non-interactive step {step.value}")


def can_accept_image(draft: Optional[Draft]) -> bool:
    return draft is not None and draft.step is Step.IMAGES and len(draft.fields.images) < MAX_IMAGES


def add_image(draft: Draft, url: str) -> StepResult:
    if draft.step is not Step.IMAGES:
        return _stay(draft, messages.COMPLETE_CURRENT_STEP)
    if len(draft.fields.images) >= MAX_IMAGES:
        return _stay(draft, messages.IMAGE_LIMIT_REACHED)
    images = draft.fields.images + (url,)
    reply = messages.IMAGE_UPLOADED.format(count=len(images))
    if len(images) >= MAX_IMAGES:
        reply = f"{reply}\n\n{messages.IMAGE_LIMIT_REACHED}"
    return StepResult(draft=draft.advance(Step.IMAGES, images=images), reply=reply)


def request_done(draft: Optional[Draft]) -> StepResult:
    """Check whether ``draft`` can be finalized; the caller performs the writes."""
    if draft is None:
        return _stay(None, messages.NO_ACTIVE_SUBMISSION)
    if draft.step is not Step.IMAGES:
        return _stay(draft, messages.COMPLETE_CURRENT_STEP)
    if not draft.fields.images:
        return _stay(draft, messages.NEED_ONE_IMAGE)
    return StepResult(draft=draft, reply=messages.SUBMITTED, finalize=True, changed=False)


def cancel(draft: Optional[Draft]) -> StepResult:
    if draft is None:
        return _stay(None, messages.NO_SUBMISSION_TO_CANCEL)
    return StepResult(draft=None, reply=messages.SUBMISSION_CANCELLED)


def build_property_record(draft: Draft, now: datetime) -> Dict[str, Any]:
    fields = draft.fields
    return {
        "owner_id": draft.owner_id,
        "name": fields.name,
        "location": fields.location,
        "price": fields.price,
        "tokens": fields.tokens,
        "property_type": fields.property_type,
        "description": fields.description,
        "images": list(fields.images),
        "submitted_at": now,
        "status": "pending",
    }
