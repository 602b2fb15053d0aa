from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aurora.db.base import Base, UUIDPkMixin, TimestampMixin, TenantScopedMixin
from aurora.db.models.enums import UserStatus
from aurora.db.models.tenant import Tenant


class User(UUIDPkMixin, TenantScopedMixin, TimestampMixin, Base):
    """Staff member of a municipality (GESTOR or TECNICO)."""
    __tablename__ = "users"

    # Globally unique: login resolves the tenant from the e-mail.
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=UserStatus.PENDING.value, server_default=UserStatus.PENDING.value
    )
    email_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    tenant: Mapped[Tenant] = relationship("Tenant", lazy="joined")

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value


class UserSession(UUIDPkMixin, TimestampMixin, Base):
    """Login session; the access token carries its id as `sid`."""
    __tablename__ = "user_sessions"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class VerificationToken(UUIDPkMixin, TimestampMixin, Base):
    """Single-use magic-link token, stored hashed and keyed by e-mail."""
    __tablename__ = "verification_tokens"
    __table_args__ = (
        UniqueConstraint("identifier", "token_hash", name="uq_verification_tokens_identifier_token"),
    )

    identifier: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    token_hash: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
