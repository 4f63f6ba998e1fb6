"""Shared test fixtures for the storefront."""

import asyncio
from typing import Any

import pytest
from fastapi.testclient import TestClient

from storefront.catalog import normalize_product
from storefront.database import StoreError
from storefront.main import app, get_sessions, get_store
from storefront.sessions import SessionRegistry


class FakeStore:
    """In-memory stand-in for MongoStore.

    Set ``fail_reads`` / ``fail_writes`` to make the next calls raise the way
    a dropped connection would.
    """

    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None):
        self.collections = collections or {}
        self.fail_reads = False
        self.fail_writes = False
        # Any other exception to raise from append_document
        self.write_error: Exception | None = None
        # When set, append_document signals write_started and waits on gate
        self.gate: asyncio.Event | None = None
        self.write_started: asyncio.Event | None = None
        self.reads: list[str] = []
        self.writes: list[tuple[str, dict[str, Any]]] = []

    async def list_documents(self, collection_name: str) -> list[dict[str, Any]]:
        self.reads.append(collection_name)
        if self.fail_reads:
            raise StoreError("connection refused")
        return [dict(d) for d in self.collections.get(collection_name, [])]

    async def append_document(self, collection_name: str, data: dict[str, Any]) -> dict[str, Any]:
        if self.write_started is not None:
            self.write_started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.write_error is not None:
            raise self.write_error
        if self.fail_writes:
            raise StoreError("connection refused")
        self.writes.append((collection_name, data))
        doc = {**data, "id": f"{collection_name}-{len(self.writes)}"}
        self.collections.setdefault(collection_name, []).append(doc)
        return doc


SAMPLE_PRODUCTS = [
    {"id": "p1", "name": "Ring", "price": "19.9"},
    {
        "id": "p2",
        "name": "Rose Gold Watch",
        "price": 399,
        "image_url": "watch.jpg",
        "description": "A watch.",
        "additional_images": ["watch-side.jpg", "watch-back.jpg"],
        "details": ["Water resistant"],
        "specifications": ["Case: 36 mm"],
    },
    {"id": "p3", "name": "Pearl Bracelet", "price": "abc", "image_url": "pearl.jpg"},
]


@pytest.fixture
def store():
    return FakeStore({"products": [dict(p) for p in SAMPLE_PRODUCTS]})


@pytest.fixture
def products():
    return [normalize_product(p) for p in SAMPLE_PRODUCTS]


@pytest.fixture
def valid_details():
    return {
        "full_name": "Salma Benali",
        "phone": "+212640987767",
        "address": "12 Rue Al Jazair",
        "city": "Tetouan",
        "notes": "Call before delivery",
    }


@pytest.fixture
def sessions():
    return SessionRegistry()


@pytest.fixture
def wired_app(store, sessions):
    """The app with the fake store and the test session registry plugged in."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_sessions] = lambda: sessions
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(wired_app):
    with TestClient(wired_app) as c:
        yield c
