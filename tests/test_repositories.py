"""Tests for the call record store and key lookups."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from callgate.auth.middleware import resolve_tenant
from callgate.config import settings
from callgate.errors import MissingCredential, Unauthorized
from callgate.models import CallRecord
from callgate.storage.repositories import list_calls, upsert_call
from callgate.utils.timestamps import as_utc

T0 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


def _fields(**overrides):
    fields = {
        "occurred_at": T0,
        "contact_name": "John Smith",
        "phone": "(555) 123-4567",
        "direction": "inbound",
        "status": "Qualified",
        "summary": "first",
    }
    fields.update(overrides)
    return fields


@pytest.mark.asyncio
async def test_upsert_same_external_id_updates_in_place(db, seed):
    """Re-ingesting an id mutates the row and keeps created_at."""
    tenant = seed.tenant_a.context
    first = await upsert_call(db, tenant, "call_1", _fields(), now=T0)
    await db.commit()
    first_created = as_utc(first.created_at)

    later = T0 + timedelta(hours=1)
    second = await upsert_call(
        db, tenant, "call_1", _fields(summary="second", status="Completed"), now=later
    )
    await db.commit()

    count = await db.scalar(select(func.count()).select_from(CallRecord))
    assert count == 1
    assert second.summary == "second"
    assert second.status == "Completed"
    assert as_utc(second.created_at) == first_created == T0
    assert as_utc(second.updated_at) == later


@pytest.mark.asyncio
async def test_upsert_keeps_original_owner(db, seed):
    """The first writer's account owns the row even if another tenant reuses the id."""
    await upsert_call(db, seed.tenant_a.context, "shared", _fields(), now=T0)
    await db.commit()
    record = await upsert_call(
        db, seed.tenant_b.context, "shared", _fields(summary="from b"), now=T0
    )
    await db.commit()

    assert str(record.account_id) == seed.tenant_a.account_id
    assert record.summary == "from b"
    assert await list_calls(db, seed.tenant_b.context, 100) == []


@pytest.mark.asyncio
async def test_list_is_tenant_scoped_and_newest_first(db, seed):
    a, b = seed.tenant_a.context, seed.tenant_b.context
    for i in range(3):
        await upsert_call(
            db, a, f"a-{i}", _fields(occurred_at=T0 + timedelta(minutes=i)), now=T0
        )
        await upsert_call(
            db, b, f"b-{i}", _fields(occurred_at=T0 + timedelta(minutes=i)), now=T0
        )
    await db.commit()

    records = await list_calls(db, a, 100)
    assert [r.external_id for r in records] == ["a-2", "a-1", "a-0"]
    assert all(str(r.account_id) == seed.tenant_a.account_id for r in records)

    assert len(await list_calls(db, a, 2)) == 2


@pytest.mark.asyncio
async def test_list_caps_at_one_thousand(db, seed):
    tenant = seed.tenant_a.context
    db.add_all(
        CallRecord(
            external_id=f"bulk-{i}",
            account_id=tenant.account_id,
            occurred_at=T0 + timedelta(seconds=i),
            created_at=T0,
            updated_at=T0,
        )
        for i in range(1001)
    )
    await db.commit()

    records = await list_calls(db, tenant, 5000)
    assert len(records) == 1000
    assert records[0].external_id == "bulk-1000"


@pytest.mark.asyncio
async def test_resolve_tenant(db, seed):
    tenant = await resolve_tenant(db, f"  {seed.tenant_a.api_key} ")
    assert tenant.account_id == seed.tenant_a.account_id


@pytest.mark.asyncio
@pytest.mark.parametrize("secret", [None, "", "   "])
async def test_resolve_tenant_missing(db, seed, secret):
    with pytest.raises(MissingCredential):
        await resolve_tenant(db, secret)


@pytest.mark.asyncio
async def test_resolve_tenant_rejects_unknown_and_revoked(db, seed):
    with pytest.raises(Unauthorized):
        await resolve_tenant(db, "ck_does_not_exist")
    with pytest.raises(Unauthorized):
        await resolve_tenant(db, seed.revoked_key)


@pytest.mark.asyncio
async def test_list_cap_follows_settings(db, seed, monkeypatch):
    """The store caps rows with the same max_list_limit the gateway clamps to."""
    monkeypatch.setattr(settings, "max_list_limit", 2)
    tenant = seed.tenant_a.context
    for i in range(3):
        await upsert_call(db, tenant, f"cap-{i}", _fields(), now=T0)
    await db.commit()

    assert len(await list_calls(db, tenant, 5000)) == 2


@pytest.mark.asyncio
async def test_upsert_rejects_unsupported_backend(seed):
    session = SimpleNamespace(
        get_bind=lambda: SimpleNamespace(dialect=SimpleNamespace(name="mysql"))
    )
    with pytest.raises(RuntimeError, match="mysql"):
        await upsert_call(session, seed.tenant_a.context, "call_x", _fields(), now=T0)
