from datetime import datetime, timedelta, timezone

import pytest

from conftest import ADMIN, OWNER, texts
from submission import messages
from submission.models import CallbackAction, Command, InlineButtons, PromptKeyboard, Reply, WebAppMenu


def cmd(name, args="", sender=OWNER):
    return Command(name=name, args_text=args, sender_id=sender, sender_name="Ada")


def press(action, payload="", sender=ADMIN):
    return CallbackAction(action_id=action, payload=payload, sender_id=sender)


def _submit(store, name, minutes_ago=0, owner=OWNER, status="pending"):
    submitted = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago)
    return store.create_property(
        {
            "owner_id": owner,
            "name": name,
            "location": "Lekki",
            "price": 45000,
            "tokens": 30,
            "property_type": "House",
            "description": "3 bed duplex",
            "images": ["https://img/1"],
            "submitted_at": submitted,
            "status": status,
        }
    )


def test_start_registers_and_shows_keyboard(send, store):
    replies = send(cmd("start"))
    assert store.find_by_chat_id(OWNER)["name"] == "Ada"
    [welcome] = replies
    assert isinstance(welcome, PromptKeyboard)
    assert "Welcome to Ile Properties Bot, Ada" in welcome.text
    assert welcome.options[0] == ("/add_property", "/my_properties")


def test_start_sets_webapp_menu_when_configured(send, dispatcher):
    dispatcher.moderation.webapp_url = "https://ile-properties.com"
    replies = send(cmd("start"))
    assert isinstance(replies[0], WebAppMenu)
    assert replies[0].url == "https://ile-properties.com"


def test_start_is_idempotent(send, store):
    send(cmd("start"))
    send(cmd("start"))
    assert len(store.users) == 1


def test_help_lists_commands(send):
    [reply] = send(cmd("help"))
    assert "/add_property" in reply.text
    assert "/pending_properties" in reply.text


def test_my_properties_requires_registration(send):
    assert texts(send(cmd("my_properties"))) == [messages.NOT_REGISTERED]


def test_my_properties_lists_newest_first(send, store):
    store.create_user(OWNER)
    assert texts(send(cmd("my_properties"))) == [messages.NO_OWN_PROPERTIES]
    _submit(store, "Old Farm", minutes_ago=60)
    _submit(store, "New Flat", minutes_ago=1)
    _submit(store, "Someone Else's", owner="555")
    [reply] = send(cmd("my_properties"))
    assert reply.text.index("New Flat") < reply.text.index("Old Farm")
    assert "Someone Else's" not in reply.text
    assert "Price: ₦45,000" in reply.text
    assert "Submitted: Mon Oct 19 2026" in reply.text


@pytest.mark.parametrize("command", ["pending_properties", "all_properties", "ban_user", "unban_user"])
def test_admin_commands_refuse_regular_users(send, store, command):
    store.create_user(OWNER)
    assert texts(send(cmd(command, "123"))) == [messages.ADMIN_REQUIRED]


def test_admin_commands_refuse_unknown_users(send):
    assert texts(send(cmd("pending_properties"))) == [messages.NOT_REGISTERED]


def test_pending_shows_oldest_with_buttons(send, store, admin):
    _submit(store, "Second", minutes_ago=5)
    first = _submit(store, "First", minutes_ago=50)
    _submit(store, "Done Already", minutes_ago=90, status="approved")
    [card] = send(cmd("pending_properties", sender=admin))
    assert isinstance(card, InlineButtons)
    assert "First" in card.text
    assert card.rows[0][0] == ("✅ Approve", f"approve_property:{first['id']}")
    assert card.rows[0][1] == ("❌ Reject", f"reject_property:{first['id']}")
    assert card.rows[1][0][1] == "next_property"


def test_pending_when_empty(send, admin):
    assert texts(send(cmd("pending_properties", sender=admin))) == [messages.NO_PENDING]


def test_approve_notifies_owner(send, store, admin):
    prop = _submit(store, "Sunset Villa")
    replies = send(press("approve_property", prop["id"]))
    assert store.get_property(prop["id"])["status"] == "approved"
    assert Reply(admin, messages.APPROVED_ADMIN.format(name="Sunset Villa")) in replies
    assert Reply(OWNER, messages.APPROVED_OWNER.format(name="Sunset Villa")) in replies
    assert messages.MORE_PENDING not in texts(replies)


def test_reject_mentions_remaining_queue(send, store, admin):
    prop = _submit(store, "Sunset Villa", minutes_ago=10)
    _submit(store, "Another")
    replies = send(press("reject_property", prop["id"]))
    assert store.get_property(prop["id"])["status"] == "rejected"
    assert Reply(OWNER, messages.REJECTED_OWNER.format(name="Sunset Villa")) in replies
    assert texts(replies)[-1] == messages.MORE_PENDING


def test_status_change_is_one_way(send, store, admin):
    prop = _submit(store, "Sunset Villa")
    send(press("approve_property", prop["id"]))
    assert texts(send(press("reject_property", prop["id"]))) == [messages.PROPERTY_ALREADY_PROCESSED]
    assert store.get_property(prop["id"])["status"] == "approved"


def test_missing_property(send, admin):
    assert texts(send(press("approve_property", "nope"))) == [messages.PROPERTY_ALREADY_PROCESSED]


def test_non_admin_cannot_moderate(send, store):
    store.create_user(OWNER)
    prop = _submit(store, "Sunset Villa")
    assert texts(send(press("approve_property", prop["id"], sender=OWNER))) == [messages.ADMIN_REQUIRED]
    assert store.get_property(prop["id"])["status"] == "pending"


def test_next_property_button(send, admin):
    assert texts(send(press("next_property"))) == [messages.NEXT_PROPERTY]


def test_all_properties_shows_recent_ten(send, store, admin):
    assert texts(send(cmd("all_properties", sender=admin))) == [messages.NO_PROPERTIES]
    for index in range(12):
        _submit(store, f"Listing {index:02d}", minutes_ago=index)
    [reply] = send(cmd("all_properties", sender=admin))
    assert "Listing 00" in reply.text
    assert "Listing 09" in reply.text
    assert "Listing 10" not in reply.text


def test_ban_and_unban(send, store, admin):
    store.create_user(OWNER)
    assert texts(send(cmd("ban_user", sender=admin))) == [messages.BAN_USAGE]
    assert texts(send(cmd("ban_user", OWNER, sender=admin))) == [messages.USER_BANNED.format(user_id=OWNER)]
    assert store.find_by_chat_id(OWNER)["is_banned"] is True
    assert texts(send(cmd("add_property"))) == [messages.BANNED]

    assert texts(send(cmd("unban_user", OWNER, sender=admin))) == [messages.USER_UNBANNED.format(user_id=OWNER)]
    assert store.find_by_chat_id(OWNER)["is_banned"] is False
    assert texts(send(cmd("add_property"))) == [messages.PROMPT_NAME]


def test_ban_unknown_user(send, admin):
    assert texts(send(cmd("ban_user", "404", sender=admin))) == [messages.USER_NOT_FOUND]


def test_make_admin(send, store):
    assert texts(send(cmd("make_admin", "wrong"))) == [messages.INVALID_ADMIN_SECRET]
    assert store.find_by_chat_id(OWNER) is None

    assert texts(send(cmd("make_admin", "open-sesame"))) == [messages.ADMIN_REGISTERED]
    assert store.find_by_chat_id(OWNER)["is_admin"] is True


def test_make_admin_promotes_existing_user(send, store):
    store.create_user(OWNER)
    assert texts(send(cmd("make_admin", "open-sesame"))) == [messages.ADMIN_GRANTED]
    assert store.find_by_chat_id(OWNER)["is_admin"] is True


def test_make_admin_disabled_without_secret(send, dispatcher):
    dispatcher.moderation.admin_secret_code = None
    assert texts(send(cmd("make_admin", ""))) == [messages.INVALID_ADMIN_SECRET]
