import json
import os
from contextlib import contextmanager
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.session import get_async_db

# Import all models so metadata includes every table
from services.store_service import models as _store_models  # noqa: F401
from services.store_service.app.main import app
from services.store_service.midtrans_client import MidtransClient, get_midtrans_client

# Clear cached settings to reload with test env vars
get_settings.cache_clear()
settings = get_settings()

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")


def make_customer_user(user_id: str = "auth-customer-1", **overrides) -> AuthUser:
    defaults = {
        "user_id": user_id,
        "email": f"{user_id}@test.com",
        "name": "Test Customer",
        "role": "authenticated",
    }
    defaults.update(overrides)
    return AuthUser(**defaults)


def make_admin_user(user_id: str = "auth-admin-1", **overrides) -> AuthUser:
    defaults = {
        "user_id": user_id,
        "email": "admin@5scent.com",
        "name": "Store Admin",
        "role": "admin",
    }
    defaults.update(overrides)
    return AuthUser(**defaults)


@contextmanager
def override_auth(target_app, user: AuthUser):
    """Temporarily authenticate requests as ``user``."""
    previous = target_app.dependency_overrides.get(get_current_user)
    target_app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield
    finally:
        if previous is None:
            target_app.dependency_overrides.pop(get_current_user, None)
        else:
            target_app.dependency_overrides[get_current_user] = previous


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh schema per test. The default in-memory SQLite database lives on a
    single shared connection (StaticPool) so the app and the test see the
    same rows. Point TEST_DATABASE_URL at Postgres to run against it.
    """
    kwargs = {"future": True}
    if TEST_DATABASE_URL.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = StaticPool
    engine = create_async_engine(TEST_DATABASE_URL, **kwargs)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Payment gateway
# ---------------------------------------------------------------------------


class MidtransStub:
    """In-process stand-in for the Midtrans Core API.

    Charges succeed with a QR action by default; ``fail_next_charge`` makes
    the next charge return an error body. Status lookups answer with
    ``status_body``.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.charge_error: tuple[int, dict] = None
        self.status_body = {"status_code": "201", "transaction_status": "pending"}

    def fail_next_charge(self, http_status: int = 400, body: dict = None):
        self.charge_error = (
            http_status,
            body or {"status_code": "400", "status_message": "Charge rejected"},
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            return httpx.Response(200, json=self.status_body)

        if self.charge_error is not None:
            http_status, body = self.charge_error
            self.charge_error = None
            return httpx.Response(http_status, json=body)

        payload = json.loads(request.content)
        order_id = payload["transaction_details"]["order_id"]
        gross_amount = payload["transaction_details"]["gross_amount"]
        return httpx.Response(
            201,
            json={
                "status_code": "201",
                "status_message": "QRIS transaction is created",
                "transaction_id": f"trx-{order_id}",
                "order_id": order_id,
                "gross_amount": f"{gross_amount}.00",
                "payment_type": "qris",
                "transaction_status": "pending",
                "actions": [
                    {
                        "name": "generate-qr-code",
                        "method": "GET",
                        "url": f"https://api.sandbox.midtrans.com/v2/qris/{order_id}/qr-code",
                    }
                ],
            },
        )

    @property
    def charges(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]

    def client(self) -> MidtransClient:
        return MidtransClient(
            server_key=settings.MIDTRANS_SERVER_KEY,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def midtrans() -> MidtransStub:
    return MidtransStub()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(db_session, midtrans) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with the app and overridden DB, auth and gateway.
    Requests are made as the default customer unless ``override_auth`` is used.
    """
    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_current_user] = lambda: make_customer_user()
    app.dependency_overrides[get_midtrans_client] = midtrans.client

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """
    Placeholder bearer header. Auth is resolved through dependency overrides,
    so the token itself is never decoded in tests.
    """
    return {"Authorization": "Bearer mock-token"}
