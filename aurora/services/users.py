from __future__ import annotations

import logging
from datetime import timedelta
from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.errors import ConflictError, ForbiddenError, NotFoundError, ServiceFailureError
from aurora.core.settings import get_app_settings
from aurora.db.models.enums import ROLE_LABELS, UserRole, UserStatus
from aurora.db.models.security import User
from aurora.db.tenancy import unscoped
from aurora.repositories.security import SecurityRepository
from aurora.services.auth import AuthService, build_verify_url
from aurora.services.base import BaseService
from aurora.services.mailer import MailDeliveryError, Mailer, render_invitation_email

logger = logging.getLogger(__name__)


class UserService(BaseService):
    """Team management for GESTOR users; operates within the session's tenant."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = SecurityRepository(session)

    # PUBLIC_INTERFACE
    async def list_users(self) -> List[User]:
        """Users of the tenant, newest first."""
        return await self.repo.list_users()

    # PUBLIC_INTERFACE
    async def invite(self, inviter: User, email: str, role: UserRole, mailer: Mailer) -> User:
        """
        Create a PENDING user and e-mail an invitation with a 7-day magic link.

        E-mails are unique across all municipalities. When the invitation
        cannot be delivered nothing is persisted.
        """
        email = email.strip().lower()
        with unscoped():
            existing = await self.repo.get_user_by_email(email)
        if existing is not None:
            raise ConflictError("Já existe um usuário cadastrado com este email")

        user = await self.repo.create_user(
            email=email,
            name=email.split("@")[0],
            role=role.value,
            status=UserStatus.PENDING.value,
        )
        settings = get_app_settings()
        token = await AuthService(self.session).issue_verification_token(
            email, timedelta(days=settings.INVITATION_EXPIRE_DAYS)
        )

        message = render_invitation_email(
            to=email,
            inviter_name=inviter.name,
            municipality_name=inviter.tenant.name,
            role_label=ROLE_LABELS[role.value],
            url=build_verify_url(email, token),
        )
        try:
            await mailer.send(message)
        except MailDeliveryError as exc:
            await self.session.rollback()
            raise ServiceFailureError(
                "Falha ao enviar email de convite. Por favor, tente novamente."
            ) from exc

        await self.repo.commit()
        logger.info("User %s invited as %s", user.id, role.value)
        return user

    async def _get_in_tenant(self, user_id: UUID) -> User:
        user = await self.repo.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("Usuário não encontrado")
        return user

    # PUBLIC_INTERFACE
    async def deactivate(self, actor: User, user_id: UUID) -> User:
        """Set INACTIVE and delete every login session of the user. The record is kept."""
        if user_id == actor.id:
            raise ForbiddenError("Você não pode desativar sua própria conta")
        user = await self._get_in_tenant(user_id)
        user.status = UserStatus.INACTIVE.value
        removed = await self.repo.delete_sessions_for_user(user.id)
        await self.repo.commit()
        logger.info("User %s deactivated; %d session(s) revoked", user.id, removed)
        return user

    # PUBLIC_INTERFACE
    async def reactivate(self, user_id: UUID) -> User:
        """Set ACTIVE again."""
        user = await self._get_in_tenant(user_id)
        user.status = UserStatus.ACTIVE.value
        await self.repo.commit()
        logger.info("User %s reactivated", user.id)
        return user
