"""
Pytest Configuration and Fixtures.

Every test gets a fresh in-memory SQLite database; the app's get_db
dependency is pointed at it.
"""
import os
import uuid
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("SENTRY_DSN", "")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.core.database import get_db
from src.core.models import Base
from src.core.security import create_access_token, get_password_hash
from src.main import app
from src.modules import import_all_models
from src.modules.auth.models import User

import_all_models()

API = "/api/v1"


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Factory creating committed users directly in the database."""
    password_hash = get_password_hash("password123")

    async def _make(email: str | None = None, is_admin: bool = False, full_name: str | None = None) -> User:
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            hashed_password=password_hash,
            full_name=full_name,
            is_admin=is_admin,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make


@pytest.fixture
def create_household(client):
    """Create a household as ``user`` and return its JSON body."""
    async def _create(user: User, name: str = "Apartment 12B", building_id: str | None = None) -> dict:
        body: dict = {"name": name}
        if building_id:
            body["building_id"] = building_id
        response = await client.post(f"{API}/households", json=body, headers=auth_headers(user))
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def add_household_member(client):
    async def _add(owner: User, household_id: str, member: User, role: str = "USER") -> None:
        response = await client.post(
            f"{API}/households/{household_id}/members",
            json={"user_id": str(member.id), "role": role},
            headers=auth_headers(owner),
        )
        assert response.status_code == 201, response.text

    return _add


@pytest.fixture
async def estate(client, make_user):
    """
    A community with one building and one household.

    ``manager`` is community ADMIN and not a household member; ``resident``
    owns the household.
    """
    manager = await make_user(full_name="Community Manager")
    resident = await make_user(full_name="Resident")
    headers = auth_headers(manager)

    response = await client.post(f"{API}/communities", json={"name": "Sunrise Gardens"}, headers=headers)
    assert response.status_code == 201, response.text
    community_id = response.json()["id"]

    response = await client.post(
        f"{API}/communities/{community_id}/buildings",
        json={"name": "Tower A", "doorbell_timeout_seconds": 30},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    building_id = response.json()["id"]

    response = await client.post(
        f"{API}/households",
        json={"name": "12B", "building_id": building_id, "apartment_no": "12B"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    household_id = response.json()["id"]

    response = await client.post(
        f"{API}/households/{household_id}/members",
        json={"user_id": str(resident.id), "role": "OWNER"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    response = await client.delete(f"{API}/households/{household_id}/members/{manager.id}", headers=headers)
    assert response.status_code == 204, response.text

    return SimpleNamespace(
        manager=manager,
        resident=resident,
        community_id=community_id,
        building_id=building_id,
        household_id=household_id,
    )


@pytest.fixture
def create_working_group(client):
    """Create a working group in a community, optionally with members and a permission."""
    async def _create(
        manager: User,
        community_id: str,
        type: str,
        members: list[User] = (),
        name: str | None = None,
        scope: str | None = None,
        scope_id: str | None = None,
        leader: User | None = None,
    ) -> str:
        headers = auth_headers(manager)
        response = await client.post(
            f"{API}/communities/{community_id}/working-groups",
            json={"name": name or type.title(), "type": type},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        group_id = response.json()["id"]
        for member in members:
            role = "LEADER" if leader is not None and member.id == leader.id else "MEMBER"
            response = await client.post(
                f"{API}/working-groups/{group_id}/members",
                json={"user_id": str(member.id), "role": role},
                headers=headers,
            )
            assert response.status_code == 201, response.text
        if scope:
            body = {"permission": "VIEW", "scope": scope}
            if scope_id:
                body["scope_id"] = scope_id
            response = await client.post(f"{API}/working-groups/{group_id}/permissions", json=body, headers=headers)
            assert response.status_code == 201, response.text
        return group_id

    return _create
