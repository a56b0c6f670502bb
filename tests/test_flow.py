from datetime import datetime, timedelta, timezone

import pytest

from submission import flow, messages
from submission.models import MAX_IMAGES, PROPERTY_TYPES, Draft, DraftFields, Step

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _draft(step, **fields):
    return Draft(owner_id="42", step=step, fields=DraftFields(**fields))


def test_begin_submission_starts_at_name():
    result = flow.begin_submission("42", {"is_banned": False}, NOW)
    assert result.draft == Draft(owner_id="42", step=Step.NAME)
    assert result.reply == messages.PROMPT_NAME


def test_begin_submission_for_unknown_user_is_allowed():
    result = flow.begin_submission("42", None, NOW)
    assert result.draft is not None


def test_banned_user_cannot_begin():
    result = flow.begin_submission("42", {"is_banned": True}, NOW)
    assert result.draft is None
    assert not result.changed
    assert result.reply == messages.BANNED


@pytest.mark.parametrize("minutes_ago", [0, 1, 9])
def test_cooldown_blocks_recent_submitters(minutes_ago):
    user = {"last_submission_at": (NOW - timedelta(minutes=minutes_ago)).isoformat()}
    result = flow.begin_submission("42", user, NOW)
    assert result.draft is None
    assert result.reply == messages.RATE_LIMITED


def test_cooldown_expires_after_ten_minutes():
    user = {"last_submission_at": (NOW - timedelta(minutes=10)).isoformat()}
    assert flow.begin_submission("42", user, NOW).draft is not None


def test_cooldown_treats_naive_timestamps_as_utc():
    user = {"last_submission_at": (NOW - timedelta(minutes=2)).replace(tzinfo=None).isoformat()}
    assert flow.in_cooldown(user, NOW)


def test_linear_text_steps():
    draft = _draft(Step.NAME)
    result = flow.apply_text(draft, "Sunset Villa")
    assert result.draft.step is Step.LOCATION
    assert result.draft.fields.name == "Sunset Villa"
    assert result.reply == messages.PROMPT_LOCATION

    result = flow.apply_text(result.draft, "  Lekki  ")
    assert result.draft.step is Step.PRICE
    assert result.draft.fields.location == "Lekki"


def test_transitions_do_not_mutate_input():
    draft = _draft(Step.NAME)
    flow.apply_text(draft, "Sunset Villa")
    assert draft.fields.name is None
    assert draft.step is Step.NAME


@pytest.mark.parametrize("text", ["abc", "0", "-5", "", "nan", "inf", "1e400"])
def test_invalid_price_stays_at_price(text):
    draft = _draft(Step.PRICE, name="Villa", location="Lekki")
    result = flow.apply_text(draft, text)
    assert result.draft is draft
    assert result.draft.step is Step.PRICE
    assert result.draft.fields.price is None
    assert result.reply == messages.INVALID_PRICE
    assert not result.changed


@pytest.mark.parametrize(
    "text,price,tokens",
    [("47000", 47000, 31), ("45000", 45000, 30), ("1499", 1499, 0), ("1,500,000", 1500000, 1000), ("3000.75", 3000.75, 2)],
)
def test_price_sets_tokens(text, price, tokens):
    result = flow.apply_text(_draft(Step.PRICE), text)
    assert result.draft.step is Step.TYPE
    assert result.draft.fields.price == price
    assert result.draft.fields.tokens == tokens
    assert result.options == tuple((kind,) for kind in PROPERTY_TYPES)


def test_unknown_type_reprompts_with_keyboard():
    result = flow.apply_text(_draft(Step.TYPE), "Castle")
    assert result.draft.step is Step.TYPE
    assert result.reply == messages.INVALID_TYPE
    assert result.options


def test_type_must_match_literal():
    assert flow.apply_text(_draft(Step.TYPE), "house").draft.step is Step.TYPE
    assert flow.apply_text(_draft(Step.TYPE), "House").draft.step is Step.DESCRIPTION


def test_empty_and_oversized_text_are_rejected():
    draft = _draft(Step.DESCRIPTION)
    assert flow.apply_text(draft, "   ").reply == messages.EMPTY_TEXT
    too_long = flow.apply_text(draft, "x" * 1001)
    assert too_long.draft.step is Step.DESCRIPTION
    assert "1000" in too_long.reply


def test_text_during_images_asks_for_images():
    result = flow.apply_text(_draft(Step.IMAGES), "here you go")
    assert result.reply == messages.IMAGES_EXPECTED
    assert not result.finalize


def test_done_text_during_images_requests_finalize():
    result = flow.apply_text(_draft(Step.IMAGES, images=("a",)), " DONE ")
    assert result.finalize


def test_add_image_caps_at_five():
    draft = _draft(Step.IMAGES)
    for index in range(MAX_IMAGES):
        assert flow.can_accept_image(draft)
        draft = flow.add_image(draft, f"url-{index}").draft
    assert len(draft.fields.images) == MAX_IMAGES
    assert not flow.can_accept_image(draft)

    result = flow.add_image(draft, "url-6")
    assert len(result.draft.fields.images) == MAX_IMAGES
    assert result.reply == messages.IMAGE_LIMIT_REACHED


def test_fifth_image_mentions_limit():
    draft = _draft(Step.IMAGES, images=("1", "2", "3", "4"))
    result = flow.add_image(draft, "5")
    assert messages.IMAGE_LIMIT_REACHED in result.reply


def test_request_done_rules():
    assert flow.request_done(None).reply == messages.NO_ACTIVE_SUBMISSION
    assert flow.request_done(_draft(Step.DESCRIPTION)).reply == messages.COMPLETE_CURRENT_STEP
    empty = flow.request_done(_draft(Step.IMAGES))
    assert empty.reply == messages.NEED_ONE_IMAGE
    assert empty.draft.step is Step.IMAGES
    assert not empty.finalize
    assert flow.request_done(_draft(Step.IMAGES, images=("a",))).finalize


def test_cancel():
    assert flow.cancel(None).reply == messages.NO_SUBMISSION_TO_CANCEL
    result = flow.cancel(_draft(Step.PRICE))
    assert result.draft is None
    assert result.changed


def test_build_property_record():
    draft = _draft(
        Step.IMAGES,
        name="Sunset Villa",
        location="Lekki",
        price=45000,
        tokens=30,
        property_type="House",
        description="3 bed duplex",
        images=("u1",),
    )
    record = flow.build_property_record(draft, NOW)
    assert record == {
        "owner_id": "42",
        "name": "Sunset Villa",
        "location": "Lekki",
        "price": 45000,
        "tokens": 30,
        "property_type": "House",
        "description": "3 bed duplex",
        "images": ["u1"],
        "submitted_at": NOW,
        "status": "pending",
    }
