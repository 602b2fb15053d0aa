from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings
from .tenancy import SESSION_INFO_KEY, TenantContext, bind_session


_SETTINGS = get_settings()
_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None


def _ensure_engine_initialized() -> None:
    """
    Lazily initialize the AsyncEngine and session maker.
    """
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is None:
        _ENGINE = create_async_engine(
            _SETTINGS.async_database_url,
            echo=_SETTINGS.SQL_ECHO,
            pool_pre_ping=True,
        )
    if _SESSION_MAKER is None:
        _SESSION_MAKER = async_sessionmaker(
            bind=_ENGINE, expire_on_commit=False, autoflush=False, autocommit=False
        )


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the global AsyncEngine instance."""
    _ensure_engine_initialized()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the global session factory."""
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    return _SESSION_MAKER


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession suitable for FastAPI dependency injection.
    Ensures engine/session factory is initialized.
    """
    async with get_session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
@asynccontextmanager
async def tenant_context(
    session: AsyncSession,
    tenant_id: Union[str, UUID],
    user_id: Optional[Union[str, UUID]] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager that binds the tenant context to the session and
    removes it afterwards.

    Usage:
        async with tenant_context(session, tenant_id):
            # all ORM queries inside are filtered to the tenant
            ...
    """
    ctx = TenantContext(
        tenant_id=tenant_id if isinstance(tenant_id, UUID) else UUID(str(tenant_id)),
        user_id=None if user_id is None else (user_id if isinstance(user_id, UUID) else UUID(str(user_id))),
    )
    previous = session.info.get(SESSION_INFO_KEY)
    bind_session(session, ctx)
    try:
        yield session
    finally:
        bind_session(session, previous)
