"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Point the application engine at SQLite before anything imports settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base
from rest_api.core.dependencies import get_session_service
from rest_api.services.domain import CustomerSessionService, OrderService
from rest_api.services.events import OrderEventPublisher, get_order_publisher
from shared.config.constants import Actors, OrderStatus
from shared.infrastructure.db import get_db
from shared.infrastructure.session_store import InMemorySessionStore
from shared.utils.schemas import SubmitOrderRequest


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingPublisher(OrderEventPublisher):
    """Publisher that records events instead of sending them to Redis."""

    def __init__(self):
        super().__init__(channel="test:orders")
        self.events: list[dict] = []

    async def publish(self, event_type, order_ids, table_id=None, entity=None, actor=None) -> bool:
        self.events.append({
            "type": event_type,
            "order_ids": list(order_ids),
            "table_id": table_id,
            "entity": entity or {},
            "actor": actor,
        })
        return True

    def types(self) -> list[str]:
        return [event["type"] for event in self.events]


class FakeClock:
    """Settable epoch-ms clock."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def session_service(session_store, clock):
    return CustomerSessionService(session_store, clock=clock, duration_ms=600_000)


@pytest.fixture(scope="function")
def client(db_session, publisher, session_service):
    """
    Create a test client with database, publisher and session overrides.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    async def override_get_session_service():
        return session_service

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_order_publisher] = lambda: publisher
    app.dependency_overrides[get_session_service] = override_get_session_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def order_service(db_session):
    return OrderService(db_session)


@pytest.fixture
def make_order(order_service):
    """
    Create an order through the service. Defaults to one burger on table 4.

    Usage:
        order = make_order("4", ("Burger", 2, 9.5), ("Fries", 1, 3.0))
    """
    def _make(table_id: str | None = "4", *items: tuple[str, int, float]):
        request = SubmitOrderRequest(
            table_id=table_id,
            items=[
                {"name": name, "quantity": quantity, "unit_price": unit_price}
                for name, quantity, unit_price in (items or (("Burger", 1, 9.5),))
            ],
        )
        return order_service.create_order(request)

    return _make


@pytest.fixture
def advance(order_service):
    """Walk an order forward along the lifecycle as staff."""
    def _advance(order_id: str, target: str):
        order = order_service.get_order(order_id)
        path = OrderStatus.SEQUENCE
        for status in path[path.index(order.status) + 1: path.index(target) + 1]:
            order = order_service.set_order_status(order_id, status, actor=Actors.STAFF)
        return order

    return _advance
