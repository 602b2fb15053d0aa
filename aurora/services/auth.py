from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.errors import ForbiddenError, UnauthorizedError
from aurora.core.security import (
    create_access_token,
    generate_verification_token,
    hash_verification_token,
)
from aurora.core.settings import get_app_settings
from aurora.db.base import as_utc
from aurora.db.models.enums import UserStatus
from aurora.db.models.security import User
from aurora.db.session import tenant_context
from aurora.db.tenancy import unscoped
from aurora.repositories.security import SecurityRepository
from aurora.schemas.auth import AccessToken
from aurora.services.base import BaseService
from aurora.services.mailer import MailDeliveryError, Mailer, render_magic_link_email

logger = logging.getLogger(__name__)

MAGIC_LINK_SENT = "Se o email estiver cadastrado, você receberá um link de acesso em instantes."
INVALID_LINK = "Link de acesso inválido ou expirado"


# PUBLIC_INTERFACE
def build_verify_url(email: str, token: str) -> str:
    """Client URL that completes sign-in by posting the token to /auth/verify."""
    base = get_app_settings().APP_BASE_URL.rstrip("/")
    return f"{base}/auth/verify?{urlencode({'token': token, 'email': email})}"


class AuthService(BaseService):
    """
    Magic-link sign-in.

    Users and tokens are looked up by e-mail before any tenant is known, so
    those lookups run unscoped; everything after runs in the user's tenant.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = SecurityRepository(session)

    # PUBLIC_INTERFACE
    async def issue_verification_token(self, email: str, expires_in: timedelta) -> str:
        """
        Create and persist (hashed) a single-use token for the e-mail; returns
        the raw token. Earlier links for the same e-mail stop working.
        """
        await self.repo.delete_tokens_for_identifier(email)
        token = generate_verification_token()
        await self.repo.create_verification_token(
            identifier=email,
            token_hash=hash_verification_token(token),
            expires_at=datetime.now(tz=timezone.utc) + expires_in,
        )
        return token

    # PUBLIC_INTERFACE
    async def request_magic_link(self, email: str, mailer: Mailer) -> str:
        """
        Send a sign-in link when the e-mail belongs to a user that is not
        INACTIVE. The answer never reveals whether the account exists.
        """
        email = email.strip().lower()
        with unscoped():
            user = await self.repo.get_user_by_email(email)
        if user is None or user.status == UserStatus.INACTIVE.value:
            logger.info("Magic link requested for unknown or inactive account")
            return MAGIC_LINK_SENT

        settings = get_app_settings()
        token = await self.issue_verification_token(
            email, timedelta(minutes=settings.MAGIC_LINK_EXPIRE_MINUTES)
        )
        await self.repo.commit()

        try:
            await mailer.send(render_magic_link_email(email, build_verify_url(email, token)))
        except MailDeliveryError:
            logger.exception("Magic link e-mail could not be delivered")
        return MAGIC_LINK_SENT

    # PUBLIC_INTERFACE
    async def verify(self, email: str, token: str) -> AccessToken:
        """
        Consume a magic-link token and open a login session.

        Raises:
            UnauthorizedError: unknown, expired or already used token.
            ForbiddenError: the account is deactivated.
        """
        email = email.strip().lower()
        now = datetime.now(tz=timezone.utc)

        with unscoped():
            stored = await self.repo.get_verification_token(email, hash_verification_token(token))
            if stored is None:
                raise UnauthorizedError(INVALID_LINK)
            # Single use: consumed whether or not sign-in succeeds from here on.
            await self.repo.delete_verification_token(stored.id)
            await self.repo.commit()
            if as_utc(stored.expires_at) <= now:
                raise UnauthorizedError(INVALID_LINK)
            user = await self.repo.get_user_by_email(email)

        if user is None:
            raise UnauthorizedError(INVALID_LINK)
        if user.status == UserStatus.INACTIVE.value:
            raise ForbiddenError("Sua conta está desativada. Entre em contato com o gestor do seu município.")

        async with tenant_context(self.session, user.tenant_id, user.id):
            if user.status == UserStatus.PENDING.value:
                user.status = UserStatus.ACTIVE.value
                logger.info("User %s activated on first sign-in", user.id)
            if user.email_verified_at is None:
                user.email_verified_at = now
            expires_at = now + timedelta(days=get_app_settings().SESSION_MAX_AGE_DAYS)
            login = await self.repo.create_session(user.id, expires_at)
            await self.repo.commit()

        access_token = create_access_token(
            subject=str(user.id),
            tenant_id=str(user.tenant_id),
            role=user.role,
            session_id=str(login.id),
            expires_at=expires_at,
        )
        return AccessToken(access_token=access_token, expires_at=expires_at)

    # PUBLIC_INTERFACE
    async def logout(self, session_id: UUID) -> None:
        """Delete the login session; its access token stops working immediately."""
        await self.repo.delete_session(session_id)
        await self.repo.commit()

    # PUBLIC_INTERFACE
    async def resolve_session(self, session_id: UUID, user_id: UUID) -> bool:
        """True when the login session exists, belongs to the user and has not expired."""
        login = await self.repo.get_session(session_id)
        if login is None or login.user_id != user_id:
            return False
        if as_utc(login.expires_at) <= datetime.now(tz=timezone.utc):
            await self.repo.delete_session(session_id)
            await self.repo.commit()
            return False
        return True

    # PUBLIC_INTERFACE
    async def load_user(self, user_id: UUID) -> User | None:
        """Load a user within the tenant bound to the session."""
        return await self.repo.get_user_by_id(user_id)
