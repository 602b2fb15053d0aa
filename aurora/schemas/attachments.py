from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AnexoRead(BaseModel):
    """Attachment metadata."""
    id: UUID = Field(...)
    file_name: str = Field(...)
    file_size: int = Field(..., description="Size in bytes")
    mime_type: str = Field(...)
    uploaded_by: Optional[UUID] = Field(None)
    uploaded_at: datetime = Field(...)
    familia_id: Optional[UUID] = Field(None)
    individuo_id: Optional[UUID] = Field(None)

    class Config:
        from_attributes = True


class SignedUrl(BaseModel):
    """Time-limited download link."""
    url: str = Field(..., description="Relative URL including the signed token")
    file_name: str = Field(...)
    mime_type: str = Field(...)
    expires_at: datetime = Field(...)
