"""
Shared fixtures.

Environment is pinned before any ``app`` import so the cached settings,
the module-level engine and the /images mount all pick it up.
"""

import os
import tempfile

UPLOAD_DIR = tempfile.mkdtemp(prefix="food-uploads-")

os.environ.update({
    "ENV_MODE": "development",
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "REDIS_URL": "redis://127.0.0.1:1/0",
    "JWT_SECRET": "test-secret-key-for-signing-tokens",
    "ADMIN_EMAILS": "admin@example.com",
    "UPLOAD_DIRECTORY": UPLOAD_DIR,
    "FRONTEND_URL": "http://localhost:5173",
    "DELIVERY_FEE": "2",
    "STRIPE_CURRENCY": "usd",
})

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings

get_settings.cache_clear()

from app.database import Base, build_session_maker, get_db
from app.main import app
from app.models import FoodItem, Order, User  # noqa: F401
from app.services.payment import MockPaymentService, get_payment_service

ADMIN_EMAIL = "admin@example.com"
PASSWORD = "correct-horse-battery"

ADDRESS = {
    "firstName": "Jane",
    "lastName": "Doe",
    "email": "jane@example.com",
    "street": "350 Fifth Avenue",
    "city": "New York",
    "state": "NY",
    "zipcode": "10118",
    "country": "USA",
    "phone": "555-123-4567",
}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def payment_service():
    return MockPaymentService(min_latency=0, max_latency=0)


@pytest.fixture
async def client(session_maker, payment_service):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_service] = lambda: payment_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Register an account over HTTP and return its token."""
    async def _register(email: str, password: str = PASSWORD, name: str = "Test User") -> str:
        response = await client.post(
            "/register", json={"name": name, "email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        return response.json()["token"]
    return _register


@pytest.fixture
async def user_headers(register):
    return bearer(await register("customer@example.com"))


@pytest.fixture
async def admin_headers(register):
    return bearer(await register(ADMIN_EMAIL, name="Admin"))


@pytest.fixture
def add_food(client, admin_headers):
    """Create a catalog item through /food/add and return its JSON."""
    async def _add_food(name: str = "Greek Salad", price: str = "12", category: str = "Salad") -> dict:
        response = await client.post(
            "/food/add",
            headers=admin_headers,
            data={
                "name": name,
                "description": f"Fresh {name.lower()}",
                "price": price,
                "category": category,
            },
            files={"image": ("salad.png", b"\x89PNG\r\n\x1a\n" + b"\x00" * 16, "image/png")},
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _add_food


@pytest.fixture
def add_to_cart(client):
    async def _add_to_cart(headers: dict, item_id: int, times: int = 1) -> None:
        for _ in range(times):
            response = await client.post("/cart/add", headers=headers, json={"itemId": item_id})
            assert response.status_code == 200, response.text
    return _add_to_cart


@pytest.fixture
def address() -> dict:
    return dict(ADDRESS)
