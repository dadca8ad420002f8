"""
Shared fixtures for the storefront sync tests.

The remote store is simulated with httpx.MockTransport so each tier of the
degradation ladder can be failed independently. The local cache is an
in-memory SQLite database shared through a StaticPool.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")

import json
from typing import Any, Dict, List, Optional, Set

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
import models.cache_entry  # noqa: F401
import models.log  # noqa: F401
from services.cart_sync import CommerceSynchronizer
from services.catalog import CatalogReader
from utils.bus import InvalidationBus
from utils.local_store import LocalStore
from utils.read_cache import ReadThroughCache
from utils.remote_client import RemoteClient
from utils.variant_key import resolve

REMOTE_BASE = "http://remote.test/api"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRemoteStore:
    """
    In-memory stand-in for the storefront REST backend.

    `fail` switches requests into a failure mode:
    "network" (connection refused), "timeout", or an HTTP status code.
    `fail_methods` narrows it to the given HTTP methods (all when None).
    """

    def __init__(self):
        self.fail: Optional[Any] = None
        self.fail_methods: Optional[Set[str]] = None
        self.requests: List[tuple] = []
        self.carts: Dict[int, List[Dict[str, Any]]] = {}
        self.wishlists: Dict[int, List[int]] = {}
        self.products: Dict[int, Dict[str, Any]] = {}
        self.categories: List[Dict[str, Any]] = []
        self._next_id = 100

    # ---- transport ----

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/api"):
            path = path[len("/api"):]
        self.requests.append((request.method, path))

        fail = self.fail if self.fail_methods is None or request.method in self.fail_methods else None
        if fail == "network":
            raise httpx.ConnectError("connection refused", request=request)
        if fail == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if isinstance(fail, int):
            return httpx.Response(fail, json={"message": "backend error"})

        body = json.loads(request.content) if request.content else None
        parts = [p for p in path.split("/") if p]
        return self._route(request.method, parts, body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def count(self, method: str, prefix: str = "") -> int:
        return sum(1 for m, p in self.requests if m == method and p.startswith(prefix))

    # ---- routing ----

    def _route(self, method: str, parts: List[str], body: Any) -> httpx.Response:
        if parts[0] == "products":
            if len(parts) == 1:
                return httpx.Response(200, json=list(self.products.values()))
            product = self.products.get(int(parts[1]))
            if product is None:
                return httpx.Response(404, json={"message": "not found"})
            return httpx.Response(200, json=product)

        if parts[0] == "categories":
            if len(parts) == 1:
                return httpx.Response(200, json=self.categories)
            match = [c for c in self.categories if c["id"] == int(parts[1])]
            return httpx.Response(200, json=match[0]) if match else httpx.Response(404, json={})

        if parts[0] == "user":
            user_id = int(parts[1])
            if parts[2] == "cart":
                return self._cart(method, user_id, parts[3:], body)
            if parts[2] == "wishlist":
                return self._wishlist(method, user_id, parts[3:], body)

        return httpx.Response(404, json={"message": "unknown endpoint"})

    def _cart(self, method, user_id, rest, body):
        cart = self.carts.setdefault(user_id, [])
        if not rest:
            if method == "GET":
                return httpx.Response(200, json=cart)
            if method == "DELETE":
                cart.clear()
                return httpx.Response(200, json={"success": True})
            if method == "POST":
                key = resolve(body["productId"], body.get("selectedOptions"))
                for item in cart:
                    if resolve(item["productId"], item.get("selectedOptions")) == key:
                        item["quantity"] += body["quantity"]
                        return httpx.Response(200, json=item)
                product = self.products.get(body["productId"], {})
                item = {
                    "id": self._next_id,
                    "productId": body["productId"],
                    "quantity": body["quantity"],
                    "selectedOptions": body.get("selectedOptions", {}),
                    "optionsPricing": body.get("optionsPricing", {}),
                    "attachments": body.get("attachments"),
                    "product": {
                        "id": body["productId"],
                        "name": product.get("name", ""),
                        "price": body.get("price", product.get("price")),
                        "mainImage": body.get("image", product.get("mainImage")),
                    },
                }
                self._next_id += 1
                cart.append(item)
                return httpx.Response(201, json=item)

        if rest == ["update-options"] and method == "PUT":
            for item in cart:
                if str(item["id"]) == str(body["itemId"]):
                    item["selectedOptions"] = body["selectedOptions"]
            return httpx.Response(200, json=cart)

        line_id = rest[0]
        match = [item for item in cart if str(item["id"]) == line_id]
        if not match:
            return httpx.Response(404, json={"message": "line not found"})
        if method == "PUT":
            match[0]["quantity"] = body["quantity"]
            return httpx.Response(200, json=match[0])
        if method == "DELETE":
            cart.remove(match[0])
            return httpx.Response(204)
        return httpx.Response(405)

    def _wishlist(self, method, user_id, rest, body):
        wishlist = self.wishlists.setdefault(user_id, [])
        if not rest:
            if method == "GET":
                return httpx.Response(200, json=[{"productId": pid} for pid in wishlist])
            if method == "POST":
                if body["productId"] not in wishlist:
                    wishlist.append(body["productId"])
                return httpx.Response(201, json={"productId": body["productId"]})
            if method == "DELETE":
                wishlist.clear()
                return httpx.Response(204)
        if rest[0] == "product" and method == "DELETE":
            pid = int(rest[1])
            if pid in wishlist:
                wishlist.remove(pid)
            return httpx.Response(204)
        return httpx.Response(405)


# ---- fixtures ----

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db) -> LocalStore:
    return LocalStore(db)


@pytest.fixture
def bus() -> InvalidationBus:
    return InvalidationBus()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def read_cache(clock) -> ReadThroughCache:
    return ReadThroughCache(ttl_seconds=30, clock=clock)


@pytest.fixture
def fake_remote() -> FakeRemoteStore:
    remote = FakeRemoteStore()
    remote.products[42] = {"id": 42, "name": "Jacket", "price": 150.0, "mainImage": "/img/jacket.png", "stock": 5}
    remote.products[5] = {"id": 5, "name": "T-Shirt", "price": 40.0, "mainImage": "/img/tshirt.png", "stock": 10}
    remote.products[9] = {"id": 9, "name": "Scarf", "price": 25.0, "mainImage": "/img/scarf.png", "stock": 0}
    remote.categories = [{"id": 1, "name": "Outerwear"}, {"id": 2, "name": "Accessories"}]
    return remote


@pytest.fixture
def remote_client(fake_remote) -> RemoteClient:
    return RemoteClient(base_url=REMOTE_BASE, timeout=1.0, transport=fake_remote.transport())


@pytest.fixture
def catalog(remote_client, read_cache, bus) -> CatalogReader:
    return CatalogReader(remote=remote_client, cache=read_cache, bus=bus)


@pytest.fixture
def sync(store, remote_client, catalog, bus) -> CommerceSynchronizer:
    return CommerceSynchronizer(store=store, remote=remote_client, catalog=catalog, bus=bus)


@pytest.fixture
def test_client(session_factory, remote_client, read_cache, bus):
    from main import app
    from dependencies import get_bus, get_read_cache, get_remote

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_remote] = lambda: remote_client
    app.dependency_overrides[get_read_cache] = lambda: read_cache
    app.dependency_overrides[get_bus] = lambda: bus

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
