from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.logging import tenant_id_var, user_id_var
from aurora.core.security import decode_token
from aurora.db.models.enums import UserRole
from aurora.db.models.security import User
from aurora.db.session import get_async_session
from aurora.db.tenancy import TenantContext, bind_session
from aurora.services.auth import AuthService

logger = logging.getLogger(__name__)

# Bearer scheme for docs; tokens are obtained from /auth/verify
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/verify", auto_error=False)

AUTH_REQUIRED = "Authentication required"


def _unauthorized(detail: str = AUTH_REQUIRED) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# PUBLIC_INTERFACE
async def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Resolve the current user from the Authorization bearer token.

    The token must be a valid access token whose login session still exists
    and has not expired; the user must be ACTIVE. On success the request's DB
    session is bound to the user's tenant, so every query made through it is
    tenant-filtered.
    """
    if not token:
        raise _unauthorized()
    try:
        payload = decode_token(token)
    except JWTError:
        raise _unauthorized()
    if payload.get("type") != "access":
        raise _unauthorized()

    try:
        user_id = UUID(str(payload.get("sub")))
        tenant_id = UUID(str(payload.get("tenant_id")))
        session_id = UUID(str(payload.get("sid")))
    except ValueError:
        raise _unauthorized()

    svc = AuthService(session)
    if not await svc.resolve_session(session_id, user_id):
        raise _unauthorized("Session expired or revoked")

    bind_session(session, TenantContext(tenant_id=tenant_id, user_id=user_id))
    user = await svc.load_user(user_id)
    if user is None:
        raise _unauthorized()
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    request.state.tenant_id = str(tenant_id)
    request.state.user_id = str(user_id)
    request.state.session_id = session_id
    tenant_id_var.set(str(tenant_id))
    user_id_var.set(str(user_id))
    return user


# PUBLIC_INTERFACE
async def get_tenant_session(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> AsyncSession:
    """
    Return the request's AsyncSession, bound to the authenticated user's tenant.

    FastAPI caches get_async_session per request, so this is the same session
    get_current_user bound.
    """
    return session


# PUBLIC_INTERFACE
def require_roles(*required: str):
    """
    Create a dependency that requires the current user to have one of the
    specified roles. Returns the user.
    """
    allowed = set(required)
    label = " or ".join(required)

    async def _dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            logger.info("Role %s denied; requires %s", user.role, label)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This action requires {label} role",
            )
        return user

    return _dep


require_gestor = require_roles(UserRole.GESTOR.value)
require_user = require_roles(UserRole.GESTOR.value, UserRole.TECNICO.value)
