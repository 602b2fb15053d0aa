from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.deps import get_current_user, get_tenant_session
from aurora.db.models.security import User
from aurora.db.session import get_async_session
from aurora.schemas.auth import AccessToken, CurrentUser, MagicLinkRequest, Message, VerifyRequest
from aurora.services.auth import AuthService
from aurora.services.mailer import Mailer, get_mailer

router = APIRouter(prefix="/auth", tags=["Auth"])


# PUBLIC_INTERFACE
@router.post(
    "/magic-link",
    response_model=Message,
    summary="Request magic link",
    description="E-mail a sign-in link to the user. The answer is the same whether or not the account exists.",
)
async def request_magic_link(
    payload: MagicLinkRequest,
    session: AsyncSession = Depends(get_async_session),
    mailer: Mailer = Depends(get_mailer),
) -> Message:
    """Send a magic link to a registered, non-deactivated e-mail."""
    message = await AuthService(session).request_magic_link(payload.email, mailer)
    return Message(message=message)


# PUBLIC_INTERFACE
@router.post(
    "/verify",
    response_model=AccessToken,
    summary="Verify magic link",
    description="Consume a magic-link token and receive a bearer token bound to a new login session.",
)
async def verify_magic_link(
    payload: VerifyRequest,
    session: AsyncSession = Depends(get_async_session),
) -> AccessToken:
    """Exchange e-mail + token for an access token."""
    return await AuthService(session).verify(payload.email, payload.token)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=Message,
    summary="Logout",
    description="Delete the current login session; the bearer token stops working immediately.",
)
async def logout(
    request: Request,
    session: AsyncSession = Depends(get_tenant_session),
) -> Message:
    """Revoke the session the request was authenticated with."""
    await AuthService(session).logout(request.state.session_id)
    return Message(message="Sessão encerrada")


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=CurrentUser,
    summary="Current user",
    description="Return the authenticated user and their municipality.",
)
async def me(user: User = Depends(get_current_user)) -> CurrentUser:
    """Return the authenticated user's profile."""
    current = CurrentUser.model_validate(user)
    current.tenant_name = user.tenant.name
    return current
