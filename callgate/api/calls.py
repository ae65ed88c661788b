"""Call ingestion and listing endpoints."""

from typing import Annotated

from fastapi import APIRouter, Body, Query

from callgate.auth.middleware import TenantDep
from callgate.engine.gateway import GatewayDep, clamp_limit, summarize_calls
from callgate.schemas.call import (
    CallIngestRequest,
    CallIngestResponse,
    CallListItem,
    CallListResponse,
    CallRecordOut,
)

router = APIRouter()


@router.post("/calls", response_model=CallIngestResponse)
async def ingest_call(
    tenant: TenantDep,
    gateway: GatewayDep,
    body: Annotated[CallIngestRequest | None, Body()] = None,
):
    """
    Insert or update a call record for the caller's account.
    Idempotent on externalId; one is generated when omitted.
    """
    record = await gateway.ingest(tenant, body or CallIngestRequest())
    return CallIngestResponse(
        external_id=record.external_id,
        record=CallRecordOut.from_record(record),
    )


@router.get("/calls", response_model=CallListResponse)
async def get_calls(
    tenant: TenantDep,
    gateway: GatewayDep,
    limit: Annotated[str | None, Query()] = None,
):
    """Most recent calls of the caller's account, with page aggregates."""
    records = await gateway.list_recent(tenant, clamp_limit(limit))
    return CallListResponse(
        summary=summarize_calls(records),
        data=[CallListItem.from_record(r) for r in records],
    )
