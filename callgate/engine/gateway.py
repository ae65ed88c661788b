"""Ingestion gateway - validates, normalizes and persists call events for a tenant."""

import logging
import re
import secrets
import string
import time
from collections.abc import Sequence
from typing import Annotated

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from callgate.auth.middleware import TenantContext
from callgate.config import settings
from callgate.database import get_db
from callgate.errors import StorageFailure
from callgate.models import CallRecord
from callgate.schemas.call import CallIngestRequest, CallSummary
from callgate.storage.repositories import list_calls, upsert_call
from callgate.utils.timestamps import normalize_timestamp, utcnow

logger = logging.getLogger(__name__)

ANSWERED_STATUS = re.compile(r"^(completed|answered|answered call)$", re.IGNORECASE)

_ID_ALPHABET = string.ascii_lowercase + string.digits

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def generate_external_id() -> str:
    """call_<epoch ms>_<7 random lowercase alnum>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"call_{int(time.time() * 1000)}_{suffix}"


def clamp_limit(raw: str | int | None) -> int:
    """
    Clamp a requested page size into [1, max]; absent or invalid gives the default.

    Like parseInt, only the leading integer counts, so "5.5" is 5 and "10abc" is 10.
    """
    match = _LEADING_INT.match(str(raw)) if raw is not None else None
    limit = int(match.group(1)) if match else 0
    if limit <= 0:
        return settings.default_list_limit
    return min(limit, settings.max_list_limit)


def summarize_calls(records: Sequence[CallRecord]) -> CallSummary:
    """Presentation aggregates over one page of records."""
    total = len(records)
    answered = sum(1 for r in records if ANSWERED_STATUS.match(r.status or ""))
    phones = {(r.phone or "").strip() for r in records}
    phones.discard("")
    return CallSummary(
        total_calls=total,
        answered_calls=answered,
        answer_rate=round(answered / total * 100, 1) if total else 0.0,
        unique_contacts=len(phones),
    )


class IngestionGateway:
    """Write and read paths over one request-scoped session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def ingest(
        self, tenant: TenantContext, payload: CallIngestRequest
    ) -> CallRecord:
        """Normalize a validated payload and upsert it under the tenant's account."""
        now = utcnow()
        occurred_at = normalize_timestamp(payload.timestamp, now=now)
        external_id = payload.external_id or generate_external_id()
        fields = {
            "occurred_at": occurred_at,
            "contact_name": payload.contact_name,
            "phone": payload.phone,
            "direction": payload.direction,
            "status": payload.status,
            "summary": payload.summary,
        }
        try:
            record = await upsert_call(self.db, tenant, external_id, fields, now=now)
            await self.db.commit()
        except SQLAlchemyError as exc:
            logger.exception(
                "Failed to save call external_id=%s account_id=%s",
                external_id,
                tenant.account_id,
            )
            await self.db.rollback()
            raise StorageFailure(
                "Failed to save call record", reason="save_failed"
            ) from exc

        # external_id is unique across all accounts; the first owner keeps the row.
        if str(record.account_id) != tenant.account_id:
            logger.warning(
                "external_id=%s owned by account %s was updated with a key of account %s",
                external_id,
                record.account_id,
                tenant.account_id,
            )
        logger.info(
            "Saved call external_id=%s account_id=%s key_id=%s",
            external_id,
            record.account_id,
            tenant.key_id,
        )
        return record

    async def list_recent(self, tenant: TenantContext, limit: int) -> list[CallRecord]:
        """Newest calls of the tenant, at most `limit` of them."""
        try:
            return await list_calls(self.db, tenant, limit)
        except SQLAlchemyError as exc:
            logger.exception("Failed to fetch calls account_id=%s", tenant.account_id)
            raise StorageFailure("Failed to fetch calls", reason="fetch_failed") from exc


def get_gateway(db: Annotated[AsyncSession, Depends(get_db)]) -> IngestionGateway:
    return IngestionGateway(db)


GatewayDep = Annotated[IngestionGateway, Depends(get_gateway)]
