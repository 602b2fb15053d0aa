from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from aurora.db.base import Base, UUIDPkMixin, TimestampMixin, TenantScopedMixin, utcnow


class Anexo(UUIDPkMixin, TenantScopedMixin, TimestampMixin, Base):
    """Uploaded document owned by exactly one family or one citizen."""
    __tablename__ = "anexos"
    __table_args__ = (
        CheckConstraint(
            "(familia_id IS NOT NULL AND individuo_id IS NULL) OR "
            "(familia_id IS NULL AND individuo_id IS NOT NULL)",
            name="single_owner",
        ),
    )

    storage_key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(Text, nullable=False)
    uploaded_by: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    familia_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("familias.id", ondelete="CASCADE"), nullable=True, index=True
    )
    individuo_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("individuos.id", ondelete="CASCADE"), nullable=True, index=True
    )
