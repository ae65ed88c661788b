"""API key authentication and tenant resolution."""

import hashlib
import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from callgate.config import settings
from callgate.database import get_db
from callgate.errors import MissingCredential, StorageFailure, Unauthorized
from callgate.models import ApiKey

logger = logging.getLogger(__name__)

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)
SECRET_HEADER = APIKeyHeader(name="X-Secret", auto_error=False)


@dataclass(frozen=True)
class TenantContext:
    """Authenticated tenant, passed explicitly into every store call."""

    account_id: str
    key_id: int


def hash_api_key(api_key: str) -> str:
    """Hash API key with salt for storage/lookup."""
    return hashlib.sha256(
        f"{settings.api_key_hash_salt}:{api_key}".encode()
    ).hexdigest()


async def resolve_tenant(db: AsyncSession, secret: str | None) -> TenantContext:
    """Map a raw API key to its account. Unknown and revoked keys look the same."""
    secret = (secret or "").strip()
    if not secret:
        raise MissingCredential()
    try:
        result = await db.execute(
            select(ApiKey.id, ApiKey.account_id)
            .where(ApiKey.secret_hash == hash_api_key(secret))
            .where(ApiKey.revoked.is_(False))
            .limit(1)
        )
        row = result.one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("API key lookup failed")
        raise StorageFailure() from exc
    if row is None:
        raise Unauthorized()
    return TenantContext(account_id=str(row.account_id), key_id=row.id)


async def get_tenant_from_api_key(
    db: Annotated[AsyncSession, Depends(get_db)],
    api_key: str | None = Depends(API_KEY_HEADER),
    secret: str | None = Depends(SECRET_HEADER),
) -> TenantContext:
    """Extract tenant from the X-API-Key header, falling back to X-Secret."""
    return await resolve_tenant(db, (api_key or "").strip() or secret)


# Type alias for dependency injection
TenantDep = Annotated[TenantContext, Depends(get_tenant_from_api_key)]
