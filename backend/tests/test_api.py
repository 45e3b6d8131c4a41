"""Endpoint tests over the ASGI app.

Each client gets its own X-Forwarded-For address so the process-wide
request gate never carries counts from one test into the next.
"""

import asyncio
import time
import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from jsonschema import validate
from sqlalchemy import func, select

from dealcatalog.core.exceptions import UpstreamFetchError
from dealcatalog.dependencies import get_db, get_gatekeeper, get_image_relay, get_submission_limiter
from dealcatalog.main import app
from dealcatalog.middleware import RequestGateMiddleware
from dealcatalog.models import ContactMessage, Store
from dealcatalog.security.domain_gate import DomainGatekeeper
from dealcatalog.security.rate_limiter import FixedWindowRateLimiter, SlidingWindowRateLimiter
from dealcatalog.services.catalog_store import CatalogStore
from dealcatalog.services.image_relay import ImageRelay

BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
ADMIN_KEY = "test-admin-secret"

FACET_LIST = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["name", "count"],
        "properties": {"name": {"type": "string"}, "count": {"type": "integer"}},
    },
}

DEAL_LIST_SCHEMA = {
    "type": "object",
    "required": ["deals", "pagination", "filters"],
    "properties": {
        "deals": {
            "type": "array",
            "items": {
                "type": "object",
                "required": [
                    "id", "store", "name", "originalPrice", "salePrice", "discountPercent",
                    "url", "sizes", "categories", "gender", "scrapedAt",
                ],
                "properties": {
                    "id": {"type": "string"},
                    "store": {"type": "string"},
                    "brand": {"type": ["string", "null"]},
                    "originalPrice": {"type": "integer"},
                    "salePrice": {"type": "integer"},
                    "discountPercent": {"type": "integer"},
                    "sizes": {"type": "array", "items": {"type": "string"}},
                    "categories": {"type": "array", "items": {"type": "string"}},
                    "gender": {"enum": ["male", "female", "child", "unisex"]},
                },
            },
        },
        "pagination": {
            "type": "object",
            "required": ["page", "limit", "total", "totalPages"],
            "properties": {
                "page": {"type": "integer"},
                "limit": {"type": "integer"},
                "total": {"type": "integer"},
                "totalPages": {"type": "integer"},
            },
        },
        "filters": {
            "type": "object",
            "required": ["brands", "stores", "genders", "priceRange"],
            "properties": {
                "brands": FACET_LIST,
                "stores": FACET_LIST,
                "genders": FACET_LIST,
                "priceRange": {
                    "type": "object",
                    "required": ["min", "max"],
                    "properties": {"min": {"type": "integer"}, "max": {"type": "integer"}},
                },
            },
        },
    },
}


class UpstreamStub:
    """httpx.MockTransport handler that records the requests it served."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.by_host = {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.by_host.get(request.url.host, self.response)


@pytest_asyncio.fixture
async def submission_limiter():
    return SlidingWindowRateLimiter(limit=3, window_seconds=60)


@pytest_asyncio.fixture
async def upstream():
    return UpstreamStub(
        response=httpx.Response(200, content=b"\x89PNG-bytes", headers={"content-type": "image/png"})
    )


@pytest_asyncio.fixture
async def client(session_factory, submission_limiter, upstream):
    """HTTP client for the app with the test database and stubbed upstream."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_submission_limiter] = lambda: submission_limiter
    app.dependency_overrides[get_image_relay] = lambda: ImageRelay(
        get_gatekeeper(), transport=httpx.MockTransport(upstream)
    )

    headers = {"User-Agent": BROWSER_UA, "X-Forwarded-For": f"10.0.{uuid.uuid4().int % 250}.{uuid.uuid4().int % 250}"}
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        headers=headers,
    ) as c:
        yield c

    app.dependency_overrides.clear()


def contact_body(**overrides):
    body = {
        "name": "Marko",
        "email": "marko@example.rs",
        "message": "Hvala na sajtu!",
        "website": "",
        "_t": time.time() * 1000 - 10_000,
    }
    body.update(overrides)
    return body


async def count_messages(session_factory) -> int:
    async with session_factory() as db:
        result = await db.execute(select(func.count(ContactMessage.id)))
        return result.scalar()


class TestDealsEndpoint:

    async def test_list_matches_contract_and_applies_default_floor(self, client, test_db, deal_record):
        store = CatalogStore(test_db)
        await store.upsert_deal(deal_record("a", sale_price=4000))
        await store.upsert_deal(deal_record("b", store=Store.BUZZ, sale_price=8000))

        response = await client.get("/api/deals")

        assert response.status_code == 200
        body = response.json()
        validate(instance=body, schema=DEAL_LIST_SCHEMA)
        assert [d["id"] for d in body["deals"]] == ["a"]
        assert body["pagination"] == {"page": 1, "limit": 32, "total": 1, "totalPages": 1}

    async def test_explicit_min_discount_and_bad_values(self, client, test_db, deal_record):
        store = CatalogStore(test_db)
        await store.upsert_deal(deal_record("a", sale_price=4000))
        await store.upsert_deal(deal_record("b", store=Store.BUZZ, sale_price=8000))

        everything = await client.get("/api/deals", params={"minDiscount": "0"})
        negative = await client.get("/api/deals", params={"minDiscount": "-5", "limit": "abc"})

        assert everything.json()["pagination"]["total"] == 2
        assert negative.status_code == 200
        assert negative.json()["pagination"]["total"] == 1
        assert negative.json()["pagination"]["limit"] == 32

    async def test_camel_case_filters(self, client, test_db, deal_record):
        store = CatalogStore(test_db)
        await store.upsert_deal(deal_record("a", categories=["obuca/patike"]))
        await store.upsert_deal(deal_record("b", categories=["odeca/jakne"], sale_price=1000))

        response = await client.get(
            "/api/deals", params={"categoryPaths": "odeca/jakne", "sortBy": "price-low"}
        )

        body = response.json()
        assert [d["id"] for d in body["deals"]] == ["b"]
        assert body["filters"]["stores"] == [{"name": "djaksport", "count": 1}]

    async def test_get_single_deal(self, client, test_db, deal_record):
        await CatalogStore(test_db).upsert_deal(deal_record("a", sizes=["42", "43"]))

        found = await client.get("/api/deals/a")
        missing = await client.get("/api/deals/nope")

        assert found.status_code == 200
        assert found.json()["salePrice"] == 4000
        assert found.json()["sizes"] == ["42", "43"]
        assert missing.status_code == 404

    async def test_automation_client_is_blocked(self, client):
        response = await client.get("/api/deals", headers={"User-Agent": "python-requests/2.31"})

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden"}


class TestContactEndpoint:

    async def test_valid_submission_is_stored(self, client, session_factory):
        response = await client.post("/api/contact", json=contact_body())

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert await count_messages(session_factory) == 1

    async def test_honeypot_reports_success_without_storing(self, client, session_factory):
        response = await client.post("/api/contact", json=contact_body(website="http://spam.example"))

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert await count_messages(session_factory) == 0

    async def test_too_fast_submission_is_dropped(self, client, session_factory):
        fast = await client.post("/api/contact", json=contact_body(_t=time.time() * 1000))
        missing_timestamp = contact_body()
        del missing_timestamp["_t"]
        stale_form = await client.post("/api/contact", json=missing_timestamp)

        assert fast.json() == {"success": True}
        assert stale_form.json() == {"success": True}
        # A missing timestamp counts as rendered long ago, so it is stored
        assert await count_messages(session_factory) == 1

    async def test_validation_errors_are_reported_together(self, client, session_factory):
        response = await client.post(
            "/api/contact", json=contact_body(name="   ", email="not-an-email", message="")
        )

        assert response.status_code == 400
        assert response.json() == {
            "errors": ["Name is required.", "Email address is not valid.", "Message is required."]
        }
        assert await count_messages(session_factory) == 0

    async def test_fields_are_trimmed_and_truncated(self, client, session_factory):
        await client.post("/api/contact", json=contact_body(name="  " + "x" * 150 + "  "))

        async with session_factory() as db:
            message = (await db.execute(select(ContactMessage))).scalar_one()
        assert message.name == "x" * 100

    async def test_fourth_submission_in_a_minute_is_rate_limited(self, client, session_factory):
        statuses = []
        for _ in range(4):
            response = await client.post("/api/contact", json=contact_body())
            statuses.append(response.status_code)

        assert statuses == [200, 200, 200, 429]
        assert response.headers["retry-after"] == "60"
        assert "errors" in response.json()
        assert await count_messages(session_factory) == 3


class TestAdminEndpoint:

    async def seed_messages(self, session_factory, count):
        base = datetime(2025, 3, 1, tzinfo=timezone.utc)
        async with session_factory() as db:
            for i in range(count):
                db.add(
                    ContactMessage(
                        name=f"User {i}",
                        email=f"user{i}@example.rs",
                        message="Pitanje",
                        created_at=base + timedelta(minutes=i),
                    )
                )
            await db.commit()

    async def test_missing_or_wrong_key_is_unauthorized(self, client):
        missing = await client.get("/api/admin/messages")
        wrong = await client.get("/api/admin/messages", params={"key": "guess"})

        assert missing.status_code == 401
        assert wrong.status_code == 401

    async def test_list_is_paginated_newest_first(self, client, session_factory):
        await self.seed_messages(session_factory, 25)

        first = await client.get("/api/admin/messages", params={"key": ADMIN_KEY})
        second = await client.get("/api/admin/messages", params={"key": ADMIN_KEY, "page": "2"})

        body = first.json()
        assert body["pagination"] == {"page": 1, "pageSize": 20, "total": 25, "totalPages": 2}
        assert len(body["messages"]) == 20
        assert body["messages"][0]["name"] == "User 24"
        assert body["messages"][0]["read"] is False
        assert len(second.json()["messages"]) == 5

    async def test_mark_read_and_unread(self, client, session_factory):
        await self.seed_messages(session_factory, 2)
        listing = await client.get("/api/admin/messages", params={"key": ADMIN_KEY})
        ids = [m["id"] for m in listing.json()["messages"]]

        marked = await client.patch(
            "/api/admin/messages", params={"key": ADMIN_KEY}, json={"ids": ids[:1]}
        )
        empty = await client.patch("/api/admin/messages", params={"key": ADMIN_KEY}, json={"ids": []})

        assert marked.json() == {"success": True}
        assert empty.status_code == 400
        refreshed = await client.get("/api/admin/messages", params={"key": ADMIN_KEY})
        assert [m["read"] for m in refreshed.json()["messages"]] == [True, False]

        await client.patch(
            "/api/admin/messages", params={"key": ADMIN_KEY}, json={"ids": ids[:1], "read": False}
        )
        refreshed = await client.get("/api/admin/messages", params={"key": ADMIN_KEY})
        assert [m["read"] for m in refreshed.json()["messages"]] == [False, False]

    async def test_delete_by_ids_and_all(self, client, session_factory):
        await self.seed_messages(session_factory, 3)
        listing = await client.get("/api/admin/messages", params={"key": ADMIN_KEY})
        first_id = listing.json()["messages"][0]["id"]

        by_id = await client.request(
            "DELETE", "/api/admin/messages", params={"key": ADMIN_KEY}, json={"ids": [first_id]}
        )
        assert by_id.json() == {"success": True}
        assert await count_messages(session_factory) == 2

        nothing = await client.request(
            "DELETE", "/api/admin/messages", params={"key": ADMIN_KEY}, json={}
        )
        assert nothing.status_code == 400

        everything = await client.request(
            "DELETE", "/api/admin/messages", params={"key": ADMIN_KEY}, json={"all": True}
        )
        assert everything.status_code == 200
        assert await count_messages(session_factory) == 0


class TestImageProxy:

    async def test_missing_url(self, client):
        response = await client.get("/api/image-proxy")

        assert response.status_code == 400

    async def test_disallowed_domain_is_forbidden(self, client, upstream):
        response = await client.get(
            "/api/image-proxy", params={"url": "https://evil.com/x.jpg?d=www.djaksport.com"}
        )

        assert response.status_code == 403
        assert upstream.requests == []

    async def test_relays_image_with_cache_header(self, client, upstream):
        response = await client.get(
            "/api/image-proxy", params={"url": "https://www.djaksport.com/media/1.png"}
        )

        assert response.status_code == 200
        assert response.content == b"\x89PNG-bytes"
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == "public, max-age=86400"

        sent = upstream.requests[0]
        assert "referer" not in sent.headers
        assert sent.headers["user-agent"].startswith("Mozilla/5.0")

    async def test_missing_content_type_defaults_to_jpeg(self, client, upstream):
        upstream.response = httpx.Response(200, content=b"raw")

        response = await client.get(
            "/api/image-proxy", params={"url": "https://cdn.shopify.com/s/1"}
        )

        assert response.headers["content-type"] == "image/jpeg"

    async def test_upstream_status_is_passed_through(self, client, upstream):
        upstream.response = httpx.Response(404)

        response = await client.get(
            "/api/image-proxy", params={"url": "https://www.djaksport.com/media/gone.jpg"}
        )

        assert response.status_code == 404
        assert len(upstream.requests) == 1

    async def test_network_error_is_500_without_retry(self, client, upstream):
        upstream.error = httpx.ConnectError("connection refused")

        response = await client.get(
            "/api/image-proxy", params={"url": "https://www.djaksport.com/media/1.jpg"}
        )

        assert response.status_code == 500
        assert len(upstream.requests) == 1

    async def test_redirect_to_unlisted_host_is_forbidden(self, client, upstream):
        upstream.by_host["www.djaksport.com"] = httpx.Response(
            302, headers={"location": "http://169.254.169.254/latest/meta-data/"}
        )
        upstream.response = httpx.Response(200, content=b"SECRET")

        response = await client.get(
            "/api/image-proxy", params={"url": "https://www.djaksport.com/media/1.jpg"}
        )

        assert response.status_code == 403
        assert b"SECRET" not in response.content
        assert [r.url.host for r in upstream.requests] == ["www.djaksport.com"]

    async def test_redirect_within_allow_list_is_followed(self, client, upstream):
        upstream.by_host["www.djaksport.com"] = httpx.Response(
            301, headers={"location": "https://cdn.shopify.com/s/1.png"}
        )

        response = await client.get(
            "/api/image-proxy", params={"url": "https://www.djaksport.com/media/1.jpg"}
        )

        assert response.status_code == 200
        assert response.content == b"\x89PNG-bytes"
        assert [r.url.host for r in upstream.requests] == ["www.djaksport.com", "cdn.shopify.com"]

    async def test_slow_upstream_hits_overall_deadline(self):
        async def trickle(request):
            await asyncio.sleep(1)
            return httpx.Response(200, content=b"late")

        relay = ImageRelay(
            DomainGatekeeper(["djaksport.com"]), timeout=0.05, transport=httpx.MockTransport(trickle)
        )

        with pytest.raises(UpstreamFetchError) as exc_info:
            await relay.fetch("https://www.djaksport.com/media/1.jpg")

        assert exc_info.value.status_code is None


class TestHealthEndpoint:

    async def test_health_reports_database_and_disabled_cache(self, client, test_db, deal_record):
        await CatalogStore(test_db).upsert_deal(deal_record("a"))

        response = await client.get("/api/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "ok"
        assert body["database"] == "ok"
        assert body["redis"] == "disabled"
        assert body["deals_by_store"] == {"djaksport": 1}


class TestRequestGate:
    """The gate middleware on a bare app with a tight limiter."""

    def gated_app(self, limiter):
        gated = FastAPI()
        gated.add_middleware(RequestGateMiddleware, limiter=limiter)

        @gated.get("/api/ping")
        async def ping():
            return {"ok": True}

        @gated.get("/api/image-proxy")
        async def image():
            return {"ok": True}

        @gated.get("/robots.txt")
        async def robots():
            return {"ok": True}

        return gated

    async def call(self, gated, path, user_agent):
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=gated), base_url="http://test"
        ) as c:
            return await c.get(path, headers={"User-Agent": user_agent})

    async def test_bots_blocked_on_api_only(self):
        gated = self.gated_app(FixedWindowRateLimiter(limit=100, window_seconds=3))

        assert (await self.call(gated, "/api/ping", "curl/8.4.0")).status_code == 403
        assert (await self.call(gated, "/api/ping", "")).status_code == 403
        assert (await self.call(gated, "/api/image-proxy", "curl/8.4.0")).status_code == 200
        assert (await self.call(gated, "/robots.txt", "curl/8.4.0")).status_code == 200
        assert (await self.call(gated, "/api/ping", "Mozilla/5.0 (compatible; Googlebot/2.1)")).status_code == 200

    async def test_over_limit_gets_429_with_retry_after(self):
        gated = self.gated_app(FixedWindowRateLimiter(limit=2, window_seconds=3))

        responses = [await self.call(gated, "/api/ping", BROWSER_UA) for _ in range(3)]

        assert [r.status_code for r in responses] == [200, 200, 429]
        assert responses[-1].headers["retry-after"] == "3"
        assert responses[-1].json() == {"error": "Too many requests"}
