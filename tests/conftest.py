"""Async fixtures: in-memory SQLite database, seeded tenants, HTTP client."""

from dataclasses import dataclass

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from callgate.auth.middleware import TenantContext
from callgate.database import Base, Database
from callgate.main import create_app
from callgate.storage.repositories import create_account, issue_api_key, revoke_api_key


@dataclass
class SeededTenant:
    account_id: str
    api_key: str
    context: TenantContext


@dataclass
class Seed:
    tenant_a: SeededTenant
    tenant_b: SeededTenant
    revoked_key: str


@pytest_asyncio.fixture
async def database():
    db = Database("sqlite+aiosqlite://", poolclass=StaticPool)
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db(database: Database):
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def seed(database: Database) -> Seed:
    async with database.session() as session:
        tenants = []
        for name in ("Acme Dental", "Birch Realty"):
            account = await create_account(session, name)
            key, secret = await issue_api_key(session, account.account_id, name="test")
            tenants.append(
                SeededTenant(
                    account_id=str(account.account_id),
                    api_key=secret,
                    context=TenantContext(account_id=str(account.account_id), key_id=key.id),
                )
            )
        _, revoked = await issue_api_key(session, tenants[0].account_id, name="old")
        await revoke_api_key(session, revoked)
        await session.commit()
    return Seed(tenant_a=tenants[0], tenant_b=tenants[1], revoked_key=revoked)


@pytest_asyncio.fixture
async def client(database: Database):
    """HTTPX async test client against an app bound to the test database."""
    app = create_app(database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
