"""Repository functions for accounts, API keys and call records."""

import secrets
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from callgate.auth.middleware import TenantContext, hash_api_key
from callgate.config import settings
from callgate.models import Account, ApiKey, CallRecord
from callgate.utils.timestamps import utcnow

# Fields a re-ingest may overwrite. account_id, external_id and created_at are fixed at insert.
MUTABLE_CALL_FIELDS = (
    "occurred_at",
    "contact_name",
    "phone",
    "direction",
    "status",
    "summary",
)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    try:
        return _UPSERT_DIALECTS[dialect]
    except KeyError:
        raise RuntimeError(f"Upsert is not supported on {dialect}") from None


async def create_account(
    db: AsyncSession, name: str, email: str | None = None
) -> Account:
    """Create an account. Accounts are provisioned out-of-band, never over HTTP."""
    account = Account(
        account_id=str(uuid4()),
        name=name,
        email=email,
        created_at=utcnow(),
    )
    db.add(account)
    await db.flush()
    return account


async def get_account_by_email(db: AsyncSession, email: str) -> Account | None:
    result = await db.execute(select(Account).where(Account.email == email))
    return result.scalar_one_or_none()


async def issue_api_key(
    db: AsyncSession,
    account_id: str,
    name: str | None = None,
    secret: str | None = None,
) -> tuple[ApiKey, str]:
    """Store a new key for the account. Returns the row and the plaintext secret."""
    secret = secret or f"ck_{secrets.token_urlsafe(24)}"
    key = ApiKey(
        account_id=account_id,
        secret_hash=hash_api_key(secret),
        name=name,
        revoked=False,
        created_at=utcnow(),
    )
    db.add(key)
    await db.flush()
    return key, secret


async def revoke_api_key(db: AsyncSession, secret: str) -> bool:
    """Mark a key revoked. Returns False if no such key exists."""
    result = await db.execute(
        update(ApiKey)
        .where(ApiKey.secret_hash == hash_api_key(secret))
        .values(revoked=True)
    )
    return result.rowcount > 0


async def upsert_call(
    db: AsyncSession,
    tenant: TenantContext,
    external_id: str,
    fields: dict[str, Any],
    now: datetime | None = None,
) -> CallRecord:
    """
    Insert a call record or update the existing one with the same external_id.

    Runs as a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING statement,
    so concurrent writers for one external_id are serialized by the database.
    On conflict only MUTABLE_CALL_FIELDS and updated_at change; the existing
    row keeps its account_id and created_at.
    """
    now = now or utcnow()
    values = {field: fields[field] for field in MUTABLE_CALL_FIELDS}
    values.update(
        external_id=external_id,
        account_id=tenant.account_id,
        created_at=now,
        updated_at=now,
    )

    insert = _insert_for(db)
    stmt = insert(CallRecord).values([values])
    stmt = stmt.on_conflict_do_update(
        index_elements=[CallRecord.external_id],
        set_={
            **{field: stmt.excluded[field] for field in MUTABLE_CALL_FIELDS},
            "updated_at": stmt.excluded.updated_at,
        },
    )
    result = await db.scalars(
        stmt.returning(CallRecord),
        execution_options={"populate_existing": True},
    )
    return result.one()


async def list_calls(
    db: AsyncSession, tenant: TenantContext, limit: int
) -> list[CallRecord]:
    """Most recent calls for one tenant, newest first."""
    limit = max(1, min(limit, settings.max_list_limit))
    result = await db.execute(
        select(CallRecord)
        .where(CallRecord.account_id == tenant.account_id)
        .order_by(CallRecord.occurred_at.desc(), CallRecord.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
