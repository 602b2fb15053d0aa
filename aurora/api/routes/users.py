from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.deps import get_tenant_session, require_gestor
from aurora.db.models.security import User
from aurora.schemas.users import InviteRequest, InviteResponse, UserRead
from aurora.services.mailer import Mailer, get_mailer
from aurora.services.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[UserRead],
    summary="List users",
    description="List the team of the current municipality, newest first. GESTOR only.",
)
async def list_users(
    _: User = Depends(require_gestor),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[UserRead]:
    users = await UserService(session).list_users()
    return [UserRead.model_validate(u) for u in users]


# PUBLIC_INTERFACE
@router.post(
    "/invite",
    response_model=InviteResponse,
    status_code=201,
    summary="Invite user",
    description=(
        "Create a PENDING user and e-mail an invitation with a sign-in link valid for 7 days. "
        "E-mails are unique across municipalities. GESTOR only."
    ),
)
async def invite_user(
    payload: InviteRequest,
    gestor: User = Depends(require_gestor),
    session: AsyncSession = Depends(get_tenant_session),
    mailer: Mailer = Depends(get_mailer),
) -> InviteResponse:
    user = await UserService(session).invite(gestor, payload.email, payload.role, mailer)
    return InviteResponse(message=f"Convite enviado para {user.email}", user=UserRead.model_validate(user))


# PUBLIC_INTERFACE
@router.post(
    "/{user_id}/deactivate",
    response_model=UserRead,
    summary="Deactivate user",
    description="Set the user INACTIVE and end all of their sessions. GESTOR only; not allowed on yourself.",
)
async def deactivate_user(
    user_id: UUID = Path(..., description="User ID"),
    gestor: User = Depends(require_gestor),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    user = await UserService(session).deactivate(gestor, user_id)
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.post(
    "/{user_id}/reactivate",
    response_model=UserRead,
    summary="Reactivate user",
    description="Set a deactivated user ACTIVE again. GESTOR only.",
)
async def reactivate_user(
    user_id: UUID = Path(..., description="User ID"),
    _: User = Depends(require_gestor),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    user = await UserService(session).reactivate(user_id)
    return UserRead.model_validate(user)
