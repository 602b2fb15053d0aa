from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, delete

from aurora.db.models.security import User, UserSession, VerificationToken
from aurora.db.models.tenant import Tenant
from .base import BaseRepository


class SecurityRepository(BaseRepository):
    """Repository for users, login sessions and verification tokens."""

    # Users
    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.lower())
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def list_users(self) -> List[User]:
        stmt = select(User).order_by(User.created_at.desc())
        result = await self.scalars(stmt)
        return list(result)

    async def create_user(self, *, email: str, name: str, role: str, status: str) -> User:
        user = User(email=email.lower(), name=name, role=role, status=status)
        await self.add(user)
        await self.flush()
        return user

    async def get_tenant(self, tenant_id: UUID) -> Optional[Tenant]:
        stmt = select(Tenant).where(Tenant.id == tenant_id)
        return await self.scalar_one_or_none(stmt)

    # Sessions
    async def create_session(self, user_id: UUID, expires_at: datetime) -> UserSession:
        user_session = UserSession(user_id=user_id, expires_at=expires_at)
        await self.add(user_session)
        await self.flush()
        return user_session

    async def get_session(self, session_id: UUID) -> Optional[UserSession]:
        stmt = select(UserSession).where(UserSession.id == session_id)
        return await self.scalar_one_or_none(stmt)

    async def delete_session(self, session_id: UUID) -> None:
        stmt = delete(UserSession).where(UserSession.id == session_id)
        await self.execute(stmt)

    async def delete_sessions_for_user(self, user_id: UUID) -> int:
        stmt = delete(UserSession).where(UserSession.user_id == user_id)
        result = await self.execute(stmt)
        return int(result.rowcount or 0)

    # Verification tokens
    async def create_verification_token(
        self, identifier: str, token_hash: str, expires_at: datetime
    ) -> VerificationToken:
        token = VerificationToken(identifier=identifier.lower(), token_hash=token_hash, expires_at=expires_at)
        await self.add(token)
        await self.flush()
        return token

    async def get_verification_token(self, identifier: str, token_hash: str) -> Optional[VerificationToken]:
        stmt = select(VerificationToken).where(
            VerificationToken.identifier == identifier.lower(),
            VerificationToken.token_hash == token_hash,
        )
        return await self.scalar_one_or_none(stmt)

    async def delete_verification_token(self, token_id: UUID) -> None:
        stmt = delete(VerificationToken).where(VerificationToken.id == token_id)
        await self.execute(stmt)

    async def delete_tokens_for_identifier(self, identifier: str) -> None:
        stmt = delete(VerificationToken).where(VerificationToken.identifier == identifier.lower())
        await self.execute(stmt)
