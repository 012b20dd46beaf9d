"""Shared test fixtures."""

import asyncio

import pytest

from rankeffect.errors import StoreReadFault, StoreWriteFault
from rankeffect.models import MediaItem
from rankeffect.store import JsonDocumentStore, VoteStore


class YieldingStore:
    """Wraps a document store and yields to the event loop before every call.

    Lets concurrently scheduled votes interleave between their create,
    increment and reload steps.
    """

    def __init__(self, inner):
        self.inner = inner
        self.calls: list[tuple] = []

    async def get(self, key):
        await asyncio.sleep(0)
        self.calls.append(("get", key))
        return await self.inner.get(key)

    async def get_all(self):
        await asyncio.sleep(0)
        self.calls.append(("get_all",))
        return await self.inner.get_all()

    async def create(self, key, fields):
        await asyncio.sleep(0)
        self.calls.append(("create", key))
        return await self.inner.create(key, fields)

    async def increment(self, key, field, delta=1):
        await asyncio.sleep(0)
        self.calls.append(("increment", key, field, delta))
        await self.inner.increment(key, field, delta)


class BrokenStore:
    """Document store whose every operation faults."""

    async def get(self, key):
        raise StoreReadFault("connection reset")

    async def get_all(self):
        raise StoreReadFault("connection reset")

    async def create(self, key, fields):
        raise StoreWriteFault("permission denied")

    async def increment(self, key, field, delta=1):
        raise StoreWriteFault("permission denied")


class FakeLister:
    """Remote lister returning fixed items, or raising a given error."""

    def __init__(self, items=None, error=None):
        self.items = items or []
        self.error = error
        self.calls = 0

    async def list_media_files(self):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.items)


@pytest.fixture
def documents(tmp_path) -> JsonDocumentStore:
    return JsonDocumentStore(tmp_path / ".state")


@pytest.fixture
def yielding_documents(documents) -> YieldingStore:
    return YieldingStore(documents)


@pytest.fixture
def vote_store(yielding_documents) -> VoteStore:
    return VoteStore(yielding_documents)


@pytest.fixture
def remote_items() -> list[MediaItem]:
    return [
        MediaItem(
            filename="A.jpg",
            id="01ABC",
            url="https://contoso.sharepoint.com/download/A.jpg",
            size=1024,
        ),
        MediaItem(
            filename="B.mp4",
            id="01DEF",
            url="https://contoso.sharepoint.com/download/B.mp4",
            size=4096,
        ),
    ]


@pytest.fixture
def local_files() -> list[str]:
    return ["C.jpeg", "D.mov"]


@pytest.fixture
def broken_documents() -> BrokenStore:
    return BrokenStore()


@pytest.fixture
def make_lister():
    """Factory for fake remote listers: make_lister(items) or make_lister(error=...)."""
    return FakeLister
