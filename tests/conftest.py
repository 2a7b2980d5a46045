"""
Shared pytest fixtures.

Every test gets its own in-memory SQLite database, an in-memory Redis
double, and Sensay/Shopify clients wired to `httpx.MockTransport` stubs,
so nothing leaves the process.
"""

import json
import os
import re
from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from tenacity import wait_none

# Ensure test environment before the app reads its config
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["SENSAY_REPLICA_UUID"] = "replica-test"
os.environ["SHOPIFY_STORE_NAME"] = "test-store"

from shoppy import models  # noqa: E402,F401
from shoppy import rate_limit  # noqa: E402
from shoppy.app import app  # noqa: E402
from shoppy.cache import CartCache  # noqa: E402
from shoppy.db import Base, get_db  # noqa: E402
from shoppy.deps import get_cart_cache, get_sensay_client, get_shopify_client  # noqa: E402
from shoppy.sensay import SensayClient  # noqa: E402
from shoppy.shopify import ShopifyClient  # noqa: E402


# ============================================================================
# TEST DOUBLES
# ============================================================================


class FakeRedis:
    """Just enough of redis.asyncio.Redis for CartCache."""

    def __init__(self):
        self.store: Dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def delete(self, *keys):
        return sum(1 for k in keys if self.store.pop(k, None) is not None)

    async def aclose(self):
        pass


def product_node(pid: int, title: str, price: float, inventory: int = 10) -> Dict[str, Any]:
    handle = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    money = {"amount": f"{price:.2f}", "currencyCode": "USD"}
    return {
        "id": f"gid://shopify/Product/{pid}",
        "title": title,
        "handle": handle,
        "description": f"{title} from the test catalog",
        "totalInventory": inventory,
        "priceRange": {"minVariantPrice": money},
        "images": {"edges": [{"node": {"url": f"https://cdn.example.com/{pid}.jpg"}}]},
        "variants": {"edges": [{"node": {
            "id": f"gid://shopify/ProductVariant/{pid}",
            "title": "Default",
            "availableForSale": True,
            "price": money,
        }}]},
    }


QUERY_NOISE = {"title", "tag", "or", "and"}


class FakeStorefront:
    """
    Storefront GraphQL stub. A product matches a search when any word of
    the query string occurs in its title; more matched words rank higher.
    """

    def __init__(self, catalog: Optional[List[Dict[str, Any]]] = None):
        self.catalog = list(catalog or [])
        self.queries: List[str] = []
        self.fail_status: Optional[int] = None
        self.failing_terms: List[str] = []

    def matching(self, search_text: str) -> List[Dict[str, Any]]:
        words = [w for w in re.findall(r"[a-z0-9][a-z0-9-]*", search_text.lower()) if w not in QUERY_NOISE]
        scored = [(sum(w in n["title"].lower() for w in set(words)), n) for n in self.catalog]
        ranked = sorted((s for s in scored if s[0]), key=lambda s: -s[0])
        return [n for _, n in ranked]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        variables = body["variables"]
        if self.fail_status:
            return httpx.Response(self.fail_status, json={"errors": "unavailable"})
        if "handle" in variables:
            node = next((n for n in self.catalog if n["handle"] == variables["handle"]), None)
            return httpx.Response(200, json={"data": {"product": node}})
        if "searchText" in variables:
            text = variables["searchText"]
            self.queries.append(text)
            if any(t in text for t in self.failing_terms):
                return httpx.Response(400, json={"errors": [{"message": "bad query"}]})
            nodes = self.matching(text)
        else:
            nodes = self.catalog
        edges = [{"node": n} for n in nodes[: variables["limit"]]]
        return httpx.Response(200, json={"data": {"products": {"edges": edges}}})


class FakeSensay:
    """Sensay replica stub. Replies with `reply`, or HTTP `fail_status` when set."""

    def __init__(self, reply: str = "Happy to help!"):
        self.reply = reply
        self.fail_status: Optional[int] = None
        self.prompts: List[str] = []
        self.users_created = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail_status:
            return httpx.Response(self.fail_status, json={"error": "boom"})
        body = json.loads(request.content)
        if request.url.path.endswith("/users"):
            self.users_created += 1
            return httpx.Response(200, json={"id": f"sensay-{self.users_created}"})
        self.prompts.append(body["content"])
        return httpx.Response(200, json={"success": True, "content": self.reply})


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def async_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(async_engine) -> async_sessionmaker:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def catalog() -> List[Dict[str, Any]]:
    return [
        product_node(1, "Burgundy V-Neck Tee", 19.99),
        product_node(2, "Classic Striped Tee", 25.99),
        product_node(3, "Graphic Print Tee", 22.50),
        product_node(4, "Denim Button Shirt", 39.00),
        product_node(5, "Navy Hoodie", 49.99, inventory=0),
    ]


@pytest.fixture
def storefront(catalog) -> FakeStorefront:
    return FakeStorefront(catalog)


@pytest.fixture
def sensay_stub() -> FakeSensay:
    return FakeSensay()


@pytest_asyncio.fixture
async def shopify(storefront):
    client = ShopifyClient(
        store_name="test-store",
        storefront_token="storefront-token",
        max_attempts=2,
        retry_wait=wait_none(),
        transport=httpx.MockTransport(storefront.handler),
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def sensay(sensay_stub):
    client = SensayClient(
        api_url="https://sensay.test",
        api_key="org-secret",
        replica_uuid="replica-test",
        max_attempts=2,
        retry_wait=wait_none(),
        transport=httpx.MockTransport(sensay_stub.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cart_cache(fake_redis) -> CartCache:
    return CartCache(fake_redis, ttl_seconds=30)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limit.reset_all()
    yield
    rate_limit.reset_all()


# ============================================================================
# HTTP FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def client(session_factory, shopify, sensay, cart_cache):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_shopify_client] = lambda: shopify
    app.dependency_overrides[get_sensay_client] = lambda: sensay
    app.dependency_overrides[get_cart_cache] = lambda: cart_cache
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def register_user(client, username: str = "alice", password: str = "secret123"):
    resp = await client.post(
        "/auth/register",
        json={"email": f"{username}@example.com", "username": username, "password": password},
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    return {"Authorization": f"Bearer {data['token']}"}, data["user"]["id"]


@pytest_asyncio.fixture
async def auth(client):
    return await register_user(client)
