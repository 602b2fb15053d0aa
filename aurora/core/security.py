from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt

from aurora.core.settings import get_app_settings


def _create_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta],
    token_type: str,
) -> str:
    settings = get_app_settings()
    to_encode = data.copy()
    now = datetime.now(tz=timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire, "iat": now, "type": token_type})
    encoded_jwt = jwt.encode(
        to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )
    return encoded_jwt


# PUBLIC_INTERFACE
def create_access_token(
    subject: str,
    tenant_id: str,
    role: str,
    session_id: str,
    expires_at: datetime,
) -> str:
    """Create a signed access token bound to a login session."""
    payload: Dict[str, Any] = {
        "sub": subject,
        "tenant_id": tenant_id,
        "role": role,
        "sid": session_id,
    }
    return _create_token(payload, expires_at - datetime.now(tz=timezone.utc), token_type="access")


# PUBLIC_INTERFACE
def create_download_token(attachment_id: str, tenant_id: str, expires_minutes: Optional[int] = None) -> str:
    """Create a short-lived token authorizing the download of one attachment."""
    settings = get_app_settings()
    exp = timedelta(minutes=expires_minutes or settings.SIGNED_URL_EXPIRE_MINUTES)
    payload = {"sub": attachment_id, "tenant_id": tenant_id}
    return _create_token(payload, exp, token_type="download")


# PUBLIC_INTERFACE
def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT; raises JWTError if invalid/expired."""
    settings = get_app_settings()
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


# PUBLIC_INTERFACE
def generate_verification_token() -> str:
    """Random URL-safe secret sent in magic links."""
    return secrets.token_urlsafe(32)


# PUBLIC_INTERFACE
def hash_verification_token(token: str) -> str:
    """Verification tokens are stored hashed with the signing secret as pepper."""
    secret = get_app_settings().JWT_SECRET_KEY
    return hashlib.sha256(f"{token}{secret}".encode("utf-8")).hexdigest()
