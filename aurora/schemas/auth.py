from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from aurora.db.models.enums import UserRole, UserStatus


class MagicLinkRequest(BaseModel):
    """Request a sign-in link by e-mail."""
    email: EmailStr = Field(..., description="E-mail of the user")


class VerifyRequest(BaseModel):
    """Exchange a magic-link token for an access token."""
    email: EmailStr = Field(..., description="E-mail the link was sent to")
    token: str = Field(..., min_length=1, description="Token from the magic link")


class AccessToken(BaseModel):
    """Bearer token bound to a login session."""
    token_type: str = Field("bearer", description="Token type, always 'bearer'")
    access_token: str = Field(..., description="JWT access token")
    expires_at: datetime = Field(..., description="Session expiry (UTC)")


class Message(BaseModel):
    """Simple message response."""
    message: str = Field(...)


class CurrentUser(BaseModel):
    """The authenticated user."""
    id: UUID = Field(..., description="User ID")
    email: EmailStr = Field(..., description="User email")
    name: str = Field(..., description="Display name")
    role: UserRole = Field(..., description="GESTOR or TECNICO")
    status: UserStatus = Field(..., description="Account status")
    tenant_id: UUID = Field(..., description="Municipality the user belongs to")
    tenant_name: Optional[str] = Field(None, description="Municipality name")
    email_verified_at: Optional[datetime] = Field(None)

    class Config:
        from_attributes = True
