"""
Test configuration for Finance Tracker tests.

Environment is set BEFORE any finance_tracker import so the settings singleton
and the engine pick up a throwaway SQLite database:
  - DATABASE_URL   → sqlite+aiosqlite file in a temp directory
  - RUN_MIGRATIONS → false (tables are created per test from Base.metadata)

Run from the project root: pytest -v
"""
import os
import sys
import tempfile
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

_project_root = Path(__file__).parent.parent.parent   # .../package/
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

_db_dir = tempfile.mkdtemp(prefix="finance_tracker_tests_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_db_dir}/test.db"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters-long"
os.environ["DEBUG"] = "false"

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

import finance_tracker.models  # noqa: E402,F401
from finance_tracker import store  # noqa: E402
from finance_tracker.access.policy import Permission, Role  # noqa: E402
from finance_tracker.access.tokens import create_access_token  # noqa: E402
from finance_tracker.database import AsyncSessionLocal, Base, async_engine  # noqa: E402
from finance_tracker.entries.money import round_money  # noqa: E402
from finance_tracker.main import app  # noqa: E402
from finance_tracker.models.user_profile import UserProfileORM  # noqa: E402


# ---------------------------------------------------------------------------
# Database lifecycle — fresh schema per test
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_schema():
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled aiosqlite connections are bound to this test's event loop
    await async_engine.dispose()


@pytest_asyncio.fixture
async def db(db_schema):
    """A session for direct store/resolver tests. Nothing is committed."""
    async with AsyncSessionLocal() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_schema):
    """Async httpx client using ASGI transport — no live server needed."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------

def auth_headers(user_id: str, email: str, name: Optional[str] = None) -> dict[str, str]:
    token = create_access_token(user_id, email, name=name)
    return {"Authorization": f"Bearer {token}"}


@dataclass
class SeededUser:
    id: str
    email: str
    headers: dict[str, str]


class Seeder:
    """Writes fixture rows through the store in committed transactions."""

    async def user(self, role: Role = Role.approved, name: Optional[str] = None) -> SeededUser:
        user_id = str(uuid.uuid4())
        email = f"user-{user_id[:8]}@example.com"
        async with AsyncSessionLocal() as session:
            session.add(UserProfileORM(id=user_id, email=email, name=name, role=role.value))
            await session.commit()
        return SeededUser(id=user_id, email=email, headers=auth_headers(user_id, email, name))

    async def profile(self, owner: SeededUser, name: str = "Personal") -> str:
        async with AsyncSessionLocal() as session:
            profile = await store.create_profile(session, name=name, owner_id=owner.id)
            await session.commit()
        return profile.id

    async def link(self, user: SeededUser, profile_id: str, permission: Permission) -> None:
        async with AsyncSessionLocal() as session:
            await store.add_link(session, user.id, profile_id, permission)
            await session.commit()

    async def entry(self, profile_id: str, entry_date: str, created_by: str = "seed", **values) -> str:
        async with AsyncSessionLocal() as session:
            entry = await store.create_entry(
                session,
                profile_id=profile_id,
                entry_date=date.fromisoformat(entry_date),
                values={name: round_money(value) for name, value in values.items()},
                created_by=created_by,
            )
            await session.commit()
        return entry.id


@pytest_asyncio.fixture
async def seed(db_schema) -> Seeder:
    return Seeder()


@dataclass
class World:
    """An admin, an editor and a reader sharing one profile with two entries."""
    admin: SeededUser
    editor: SeededUser
    reader: SeededUser
    outsider: SeededUser
    profile_id: str
    entry_jan10: str
    entry_jan20: str


@pytest_asyncio.fixture
async def world(seed: Seeder) -> World:
    admin = await seed.user(Role.admin, name="Admin")
    editor = await seed.user(Role.approved, name="Editor")
    reader = await seed.user(Role.approved, name="Reader")
    outsider = await seed.user(Role.approved, name="Outsider")
    profile_id = await seed.profile(editor, name="Family")
    await seed.link(reader, profile_id, Permission.read)
    jan10 = await seed.entry(
        profile_id, "2024-01-10", created_by=editor.id, direct_equity=Decimal("1000.50"), nps=250
    )
    jan20 = await seed.entry(
        profile_id, "2024-01-20", created_by=editor.id, direct_equity=2000, bank_balance="99.99"
    )
    return World(
        admin=admin,
        editor=editor,
        reader=reader,
        outsider=outsider,
        profile_id=profile_id,
        entry_jan10=jan10,
        entry_jan20=jan20,
    )
