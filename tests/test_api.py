"""Tests for the HTTP surface, driven through FastAPI's TestClient."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

import storefront.main as main
from storefront.catalog import LOAD_ERROR_MESSAGE
from storefront.config import Settings
from storefront.orders import INVALID_PHONE_MESSAGE, ORDER_FAILED_MESSAGE, ORDER_PLACED_MESSAGE
from storefront.main import get_sessions
from storefront.sessions import SESSION_COOKIE, SessionRegistry
from storefront.share import MANUAL_COPY_MESSAGE


def post_event(client, event_type, **fields):
    return client.post("/events", json={"type": event_type, **fields})


def fill_form(client, **overrides):
    fields = {
        "full_name": "Salma Benali",
        "phone": "0612345678",
        "address": "12 Rue Al Jazair",
        "city": "Tetouan",
    }
    fields.update(overrides)
    return post_event(client, "edit_draft", **fields)


class TestRoot:
    def test_root(self, client):
        assert client.get("/").json() == {"message": "Storefront Backend Running"}


class TestProducts:
    def test_list_is_normalized(self, client):
        resp = client.get("/products")
        assert resp.status_code == 200
        assert resp.json()[0] == {"id": "p1", "name": "Ring", "price": "19.90", "image_url": ""}

    def test_search(self, client):
        assert [p["id"] for p in client.get("/products", params={"q": "ROSE"}).json()] == ["p2"]

    def test_store_down(self, client, store):
        store.fail_reads = True
        resp = client.get("/products")
        assert resp.status_code == 503
        assert resp.json()["detail"] == LOAD_ERROR_MESSAGE

    def test_reviews(self, client):
        body = client.get("/products/p2/reviews").json()
        assert len(body["reviews"]) == 2
        assert body["average_rating"] == 4.0
        assert client.get("/products/zzz/reviews").json() == {"reviews": [], "average_rating": None}


class TestSession:
    def test_activation_loads_catalog_once(self, client, store):
        first = client.get("/state")
        assert first.status_code == 200
        assert SESSION_COOKIE in first.cookies
        body = first.json()
        assert body["loading"] is False
        assert body["view"] == "catalog"
        assert [p["id"] for p in body["products"]] == ["p1", "p2", "p3"]

        client.get("/state")
        assert store.reads == ["products"]

    def test_deep_link(self, client):
        body = client.get("/state", params={"product": "p1"}).json()
        assert body["view"] == "detail"
        assert body["selected"]["id"] == "p1"
        assert body["selected"]["price"] == "19.90"

    def test_deep_link_only_on_first_activation(self, client):
        client.get("/state")
        body = client.get("/state", params={"product": "p1"}).json()
        assert body["view"] == "catalog"

    def test_load_failure(self, client, store):
        store.fail_reads = True
        body = client.get("/state").json()
        assert body["loading"] is False
        assert body["error"] == LOAD_ERROR_MESSAGE
        assert body["products"] == []

    def test_events_need_a_session(self, client):
        assert post_event(client, "back").status_code == 409

    def test_malformed_event(self, client):
        client.get("/state")
        assert post_event(client, "teleport").status_code == 422
        assert post_event(client, "select_product").status_code == 422

    def test_unknown_product(self, client):
        client.get("/state")
        assert post_event(client, "select_product", product_id="nope").status_code == 404


class TestCheckoutFlow:
    def test_happy_path(self, client, store):
        client.get("/state")
        assert post_event(client, "select_product", product_id="p2").json()["view"] == "detail"
        assert post_event(client, "buy_now").json()["view"] == "checkout"
        fill_form(client)

        body = post_event(client, "submit_order").json()
        assert body["view"] == "catalog"
        assert body["selected"] is None
        assert body["submitting"] is False
        assert body["draft"] == {"full_name": "", "phone": "", "address": "", "city": "", "notes": ""}
        assert body["notice"]["text"] == ORDER_PLACED_MESSAGE

        assert len(store.writes) == 1
        collection, doc = store.writes[0]
        assert collection == "orders"
        assert doc["status"] == "pending"
        assert doc["product_id"] == "p2"
        assert doc["product_price"] == 399

    def test_invalid_phone(self, client, store):
        client.get("/state", params={"product": "p1"})
        post_event(client, "buy_now")
        fill_form(client, phone="12")
        body = post_event(client, "submit_order").json()
        assert body["view"] == "checkout"
        assert body["notice"]["text"] == INVALID_PHONE_MESSAGE
        assert store.writes == []

    def test_store_failure_keeps_draft(self, client, store):
        client.get("/state", params={"product": "p1"})
        post_event(client, "buy_now")
        fill_form(client)
        store.fail_writes = True
        body = post_event(client, "submit_order").json()
        assert body["submitting"] is False
        assert body["draft"]["full_name"] == "Salma Benali"
        assert body["notice"]["text"] == ORDER_FAILED_MESSAGE

    def test_back(self, client):
        client.get("/state", params={"product": "p1"})
        post_event(client, "buy_now")
        assert post_event(client, "back").json()["view"] == "catalog"


class TestShareAndTheme:
    def test_share_offers_manual_copy(self, client):
        client.get("/state", params={"product": "p1"})
        notice = post_event(client, "share_product").json()["notice"]
        assert notice["text"] == MANUAL_COPY_MESSAGE
        assert notice["manual_copy_url"].endswith("/?product=p1")

    def test_share_without_selection(self, client):
        client.get("/state")
        assert post_event(client, "share_product").status_code == 409

    def test_theme_cookie_round_trip(self, client):
        client.get("/state")
        resp = post_event(client, "toggle_theme")
        assert resp.json()["dark_mode"] is True
        assert resp.cookies.get("theme") == "dark"

    def test_theme_read_on_activation(self, client):
        client.cookies.set("theme", "dark")
        assert client.get("/state").json()["dark_mode"] is True


class TestSubmissionInFlight:
    def test_unexpected_store_error_does_not_lock_the_session(self, client, store):
        client.get("/state", params={"product": "p1"})
        post_event(client, "buy_now")
        fill_form(client)

        store.write_error = RuntimeError("document too large")
        with pytest.raises(RuntimeError):
            post_event(client, "submit_order")

        body = client.get("/state").json()
        assert body["submitting"] is False
        assert body["draft"]["full_name"] == "Salma Benali"

        store.write_error = None
        assert post_event(client, "submit_order").json()["view"] == "catalog"
        assert len(store.writes) == 1

    @pytest.mark.asyncio
    async def test_events_are_refused_while_the_order_is_written(self, wired_app, store, valid_details):
        transport = httpx.ASGITransport(app=wired_app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
            await c.get("/state", params={"product": "p1"})
            await c.post("/events", json={"type": "buy_now"})
            await c.post("/events", json={"type": "edit_draft", **valid_details})

            store.gate = asyncio.Event()
            store.write_started = asyncio.Event()
            store.fail_writes = True
            submit = asyncio.create_task(c.post("/events", json={"type": "submit_order"}))
            await store.write_started.wait()

            assert (await c.get("/state")).json()["submitting"] is True
            back = await c.post("/events", json={"type": "back"})
            assert back.status_code == 409
            assert (await c.post("/events", json={"type": "edit_draft", "city": "Rabat"})).status_code == 409

            store.gate.set()
            body = (await submit).json()
            assert body["submitting"] is False
            assert body["view"] == "checkout"
            assert body["selected"]["id"] == "p1"
            assert body["draft"]["city"] == valid_details["city"]
            assert body["notice"]["text"] == ORDER_FAILED_MESSAGE

            assert (await c.post("/events", json={"type": "back"})).json()["view"] == "catalog"


class TestSessionLimits:
    def test_cookieless_clients_do_not_grow_the_registry(self, wired_app):
        small = SessionRegistry(maxsize=5)
        wired_app.dependency_overrides[get_sessions] = lambda: small
        with TestClient(wired_app) as c:
            for _ in range(20):
                c.cookies.clear()
                assert c.get("/state").status_code == 200
        assert len(small) == 5


class TestDiagnostics:
    @pytest.fixture(autouse=True)
    def offline_database(self, monkeypatch):
        async def describe():
            return {"database_name": "storefront", "collections": ["products"], "connected": True}

        monkeypatch.setattr(main, "describe", describe)

    def test_database_url_from_settings(self, client, monkeypatch):
        monkeypatch.setattr(main, "settings", Settings(DATABASE_URL="mongodb://db:27017", _env_file=None))
        body = client.get("/test").json()
        assert body["database_url"] == "✅ Set"
        assert body["database"] == "✅ Available"

    def test_default_database_url(self, client, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setattr(main, "settings", Settings(_env_file=None))
        assert client.get("/test").json()["database_url"] == "❌ Not Set"
