from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession


class BaseService:
    """
    Shared root of the AuroraSocial services.

    A service owns one request's AsyncSession, already bound to the caller's
    municipality, and builds the repositories it needs on top of it. Commits
    happen here; repositories only flush.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
