"""
Shared fixtures for the storefront tests.

The backend cart API is replaced by FakeServerCart and visitor storage runs
on an in-memory SQLite engine, so no test touches the network or disk.
"""
import random
from typing import List, Optional

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.session import get_db
from app.models.cart import CartItem, CartItemCreate, CartSyncResult, ItemType
from app.models.storage import StorageEntry  # noqa: F401
from app.routers.auth import get_current_session_optional, get_server_cart_client
from app.routers.payment import get_bank_gateway
from app.services.cart import LocalCartStore
from app.services.payment import MockBankGateway
from app.services.server_cart import ServerCartError
from app.services.session import is_authenticated
from app.services.storage import MemoryStorage


class FakeServerCart:
    """In-memory stand-in for ServerCartClient"""

    def __init__(self, items: Optional[List[CartItem]] = None, authorized: bool = True):
        self.items = list(items or [])
        self.authorized = authorized
        self.removed = []
        self.fail_fetch = False
        self.fail_push = False
        self.pushed: List[List[CartItem]] = []
        self.fetch_calls = 0

    @property
    def is_authorized(self) -> bool:
        return self.authorized

    def fetch_cart(self) -> List[CartItem]:
        self.fetch_calls += 1
        if not self.authorized:
            return []
        if self.fail_fetch:
            raise ServerCartError("API request failed: 503 Service Unavailable")
        return list(self.items)

    def push_cart(self, items: List[CartItem]) -> CartSyncResult:
        if not self.authorized:
            return CartSyncResult(message="Unauthorized", authorized=False)
        if self.fail_push:
            raise ServerCartError("API request failed: 500 Internal Server Error")
        self.pushed.append(list(items))
        removed = set(self.removed)
        self.items = [item for item in items if item.key not in removed]
        return CartSyncResult(message="Cart synced successfully", removed_items=list(self.removed))


def course(item_id: int, title: str = None, price: float = 10.0) -> CartItemCreate:
    return CartItemCreate(
        item_type=ItemType.COURSE,
        item_id=item_id,
        title=title or f"Course {item_id}",
        price=price,
    )


def product(item_id: int, title: str = None, price: float = 5.0) -> CartItemCreate:
    return CartItemCreate(
        item_type=ItemType.PRODUCT,
        item_id=item_id,
        title=title or f"Product {item_id}",
        price=price,
    )


def server_item(item_id: int, item_type: ItemType = ItemType.COURSE, **fields) -> CartItem:
    data = {"title": f"Server {item_type.value} {item_id}", "price": 20.0}
    data.update(fields)
    return CartItem(item_type=item_type, item_id=item_id, **data)


def make_token(profile_id: int = 7, **claims) -> str:
    payload = {"profileId": profile_id, "schoolId": 1, "roles": ["student"]}
    payload.update(claims)
    return jwt.encode(payload, "test-secret", algorithm="HS256")


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def store(memory_storage):
    return LocalCartStore(memory_storage)


@pytest.fixture
def fake_server():
    return FakeServerCart()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def bank_gateway():
    return MockBankGateway(success_rate=1.0, rng=random.Random(42), clock=lambda: 1700000000.5)


@pytest.fixture
def test_client(engine, fake_server, bank_gateway):
    """
    TestClient with storage, backend cart and bank gateway overridden.
    The fake server cart follows the session cookie: no session, no access.
    """
    def override_get_db():
        with Session(engine) as db:
            yield db

    def override_server_cart_client(session=Depends(get_current_session_optional)):
        fake_server.authorized = is_authenticated(session)
        return fake_server

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_server_cart_client] = override_server_cart_client
    app.dependency_overrides[get_bank_gateway] = lambda: bank_gateway

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
