from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aurora.db.base import Base, UUIDPkMixin, TimestampMixin, TenantScopedMixin, utcnow
from aurora.db.models.security import User


class Atendimento(UUIDPkMixin, TenantScopedMixin, TimestampMixin, Base):
    """A logged service/visit for a citizen."""
    __tablename__ = "atendimentos"
    __table_args__ = (
        Index("ix_atendimentos_tenant_data", "tenant_id", "data"),
    )

    individuo_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("individuos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    usuario_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    data: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    tipo_demanda: Mapped[str] = mapped_column(Text, nullable=False)
    encaminhamento: Mapped[str] = mapped_column(Text, nullable=False)
    parecer_social: Mapped[str] = mapped_column(Text, nullable=False)

    usuario: Mapped[User] = relationship("User", lazy="raise")
