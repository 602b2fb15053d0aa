from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from aurora.db.models.enums import UserRole, UserStatus


class UserRead(BaseModel):
    """Team member as listed for the GESTOR."""
    id: UUID = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="User email")
    role: UserRole = Field(..., description="GESTOR or TECNICO")
    status: UserStatus = Field(..., description="PENDING, ACTIVE or INACTIVE")
    created_at: datetime = Field(..., description="Created timestamp")

    class Config:
        from_attributes = True


class InviteRequest(BaseModel):
    """Invite a new team member."""
    email: EmailStr = Field(..., description="E-mail of the person being invited")
    role: UserRole = Field(..., description="Role granted on first sign-in")


class InviteResponse(BaseModel):
    """Result of an invitation."""
    message: str = Field(...)
    user: UserRead = Field(...)
