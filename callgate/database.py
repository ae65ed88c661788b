"""Database connection and session management."""

import ssl
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from callgate.config import Settings


def _make_ssl_context_for_supabase():
    """SSL context for Supabase - disables cert verification to avoid macOS chain issues."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def get_engine_url_and_connect_args(database_url: str) -> tuple[str, dict]:
    """Strip sslmode from URL (asyncpg doesn't accept it) and add SSL via connect_args for Supabase."""
    url = database_url
    connect_args: dict[str, Any] = {}
    if "sslmode=" in url or "ssl=" in url:
        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        query.pop("sslmode", None)
        query.pop("ssl", None)
        new_query = urlencode(query, doseq=True)
        url = urlunparse(parsed._replace(query=new_query))
        if "supabase" in database_url:
            connect_args["ssl"] = _make_ssl_context_for_supabase()
    return url, connect_args


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


class Database:
    """Connection pool handle, built once at startup and shared by requests."""

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any):
        self.engine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        url, connect_args = get_engine_url_and_connect_args(settings.database_url)
        return cls(
            url,
            echo=settings.log_level == "DEBUG",
            connect_args=connect_args,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Scoped session: rolled back on error, always closed."""
        async with self.session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for database sessions."""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
