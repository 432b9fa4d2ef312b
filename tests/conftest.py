"""
Shared fixtures: a throwaway SQLite database per test, a scripted payment
gateway, and HTTP clients bound to an app wired to both.
"""
import os
from collections.abc import AsyncGenerator
from typing import Any

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["REQUIRE_CUSTOMER_PHONE"] = "true"
os.environ["PUBLIC_BASE_URL"] = "https://shop.example.com"
os.environ["ALLOWED_ORIGINS"] = "http://localhost:3000,https://store.example.org"
os.environ["PENDING_ORDER_EXPIRY_MINUTES"] = "1440"
os.environ["ENVIRONMENT"] = "development"

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from helpers import ADMIN_TOKEN, FakeGateway, deliver_event, load_order
from storefront.core.database import Base, get_db_session
from storefront.main import create_app
from storefront.models import Order, Product


@pytest.fixture
async def db_engine(tmp_path):
    """File-backed SQLite so every session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def app(session_factory, gateway) -> FastAPI:
    application = create_app(payment_gateway=gateway)

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = override_db_session
    return application


@pytest.fixture
def client() -> TestClient:
    """Synchronous client for routes that never touch the database."""
    return TestClient(create_app(payment_gateway=FakeGateway()))


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Token": ADMIN_TOKEN}


@pytest.fixture
async def products(db_session: AsyncSession) -> dict[str, Product]:
    """Two available products (450 and 500 cents) and one retired product."""
    catalog = {
        "A": Product(id="prod_a", slug="lavender-soap", name="Lavender Soap", price_cents=450),
        "B": Product(
            id="prod_b",
            slug="oat-milk-soap",
            name="Oat Milk Soap",
            description="Gentle bar",
            price_cents=500,
        ),
        "retired": Product(
            id="prod_retired",
            slug="old-soap",
            name="Old Soap",
            price_cents=300,
            is_available=False,
        ),
    }
    db_session.add_all(catalog.values())
    await db_session.commit()
    return catalog


@pytest.fixture
def checkout_payload() -> dict[str, Any]:
    """A cart worth 2 x 450 + 1 x 500 = 1400 cents."""
    return {
        "items": [
            {"productId": "prod_a", "quantity": 2},
            {"productId": "prod_b", "quantity": 1},
        ],
        "customerEmail": "buyer@example.com",
        "customerPhone": "+1 555 0100",
    }


@pytest.fixture
async def pending_order(async_client, products, checkout_payload) -> dict[str, Any]:
    """A PENDING order created through the checkout endpoint."""
    response = await async_client.post("/api/checkout/sessions", json=checkout_payload)
    assert response.status_code == 200
    return response.json()


@pytest.fixture
async def paid_order(async_client, gateway, session_factory, pending_order) -> Order:
    """A PAID order settled through a signed checkout.session.completed webhook."""
    session = gateway.complete_session(pending_order["sessionId"], 1400)
    response = await deliver_event(async_client, "checkout.session.completed", session)
    assert response.status_code == 200
    return await load_order(session_factory, pending_order["orderNumber"])
