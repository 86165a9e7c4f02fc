from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt

from main import create_app
from salonbook.core.config import Settings
from salonbook.db.memory import InMemoryBookingStore
from salonbook.schemas.user import UserRole
from salonbook.scheduling.slots import DEFAULT_WORKING_HOURS

TEST_SECRET = "test-jwt-secret"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        STORE_BACKEND="memory",
        SUPABASE_JWT_SECRET=TEST_SECRET,
        SALON_TIMEZONE="UTC",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def store() -> InMemoryBookingStore:
    return InMemoryBookingStore()


@pytest.fixture
def app(settings, store):
    return create_app(settings, store=store)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client


def make_token(auth_id: str, email: Optional[str] = None, secret: str = TEST_SECRET) -> str:
    claims = {
        "sub": auth_id,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": datetime.utcnow() + timedelta(hours=1),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(auth_id: str, email: Optional[str] = None) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(auth_id, email)}"}


@pytest.fixture
def make_salon(store):
    """Factory creating an owner with a salon directly in the store."""

    async def _make_salon(
        auth_id: str = "owner-auth-1",
        email: str = "owner@salon.test",
        code: str = "ABC123",
        working_hours: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        now = datetime.utcnow()
        user = await store.create_owner_with_salon(
            {
                "authId": auth_id,
                "email": email,
                "name": "Salon Owner",
                "phone": "+420123456789",
                "role": UserRole.SALON_OWNER.value,
                "createdAt": now,
            },
            {
                "name": "Test Salon",
                "email": email,
                "phone": "+420123456789",
                "code": code,
                "workingHours": DEFAULT_WORKING_HOURS if working_hours is None else working_hours,
                "createdAt": now,
            },
        )
        return user

    return _make_salon


@pytest.fixture
def make_service(store):
    """Factory adding a service to a salon directly in the store."""

    async def _make_service(
        salon_id: str,
        name: str = "Haircut",
        duration: int = 60,
        price: float = 500.0,
        active: bool = True,
    ) -> Dict[str, Any]:
        return await store.create_service({
            "salonId": salon_id,
            "name": name,
            "description": f"{name} service",
            "price": price,
            "duration": duration,
            "active": active,
            "createdAt": datetime.utcnow(),
        })

    return _make_service
