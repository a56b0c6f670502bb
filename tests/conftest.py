import asyncio
from datetime import datetime, timezone

import pytest

from media.cloudinary_host import ImageUploadError
from storage.memory_store import InMemoryStore
from submission.dispatcher import Dispatcher
from submission.state import InMemoryDraftStore

OWNER = "1001"
ADMIN = "9001"


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeImageHost:
    """Stands in for Cloudinary; records refs and returns predictable URLs."""

    def __init__(self) -> None:
        self.uploaded = []
        self.fail = False

    async def upload(self, ref):
        await asyncio.sleep(0)
        if self.fail:
            raise ImageUploadError("cloudinary unavailable")
        self.uploaded.append(ref)
        return f"https://res.cloudinary.com/demo/ile_properties/{ref}.jpg"


@pytest.fixture()
def clock():
    return FakeClock(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def store():
    return InMemoryStore()


@pytest.fixture()
def drafts():
    return InMemoryDraftStore()


@pytest.fixture()
def image_host():
    return FakeImageHost()


@pytest.fixture()
def dispatcher(store, drafts, image_host, clock):
    return Dispatcher(
        users=store,
        properties=store,
        drafts=drafts,
        image_host=image_host,
        admin_secret_code="open-sesame",
        clock=clock,
    )


@pytest.fixture()
def send(dispatcher):
    def _send(event):
        return asyncio.run(dispatcher.handle(event))

    return _send


@pytest.fixture()
def admin(store):
    store.create_user(ADMIN, {"name": "Moderator", "is_admin": True})
    return ADMIN


def texts(replies):
    return [reply.text for reply in replies]
