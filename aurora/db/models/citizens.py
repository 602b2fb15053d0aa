from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Numeric, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aurora.db.base import AuditableMixin, Base, UUIDPkMixin, TimestampMixin, TenantScopedMixin


class Individuo(UUIDPkMixin, TenantScopedMixin, AuditableMixin, TimestampMixin, Base):
    """Citizen registered with CadÚnico-style personal data."""
    __tablename__ = "individuos"
    __table_args__ = (
        UniqueConstraint("tenant_id", "cpf", name="uq_individuos_tenant_cpf"),
    )

    nome_completo: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    cpf: Mapped[str] = mapped_column(Text, nullable=False)
    data_nascimento: Mapped[date] = mapped_column(Date, nullable=False)
    sexo: Mapped[str] = mapped_column(Text, nullable=False)
    nome_mae: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    nis: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    rg: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    titulo_eleitor: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    carteira_trabalho: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    composicoes: Mapped[List["ComposicaoFamiliar"]] = relationship(
        "ComposicaoFamiliar", back_populates="individuo", lazy="raise"
    )


class Familia(UUIDPkMixin, TenantScopedMixin, AuditableMixin, TimestampMixin, Base):
    """Household, headed by a responsible citizen."""
    __tablename__ = "familias"

    responsavel_familiar_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("individuos.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    endereco: Mapped[str] = mapped_column(Text, nullable=False)
    renda_familiar_total: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    responsavel: Mapped[Individuo] = relationship(
        "Individuo", foreign_keys=[responsavel_familiar_id], lazy="raise"
    )
    membros: Mapped[List["ComposicaoFamiliar"]] = relationship(
        "ComposicaoFamiliar", back_populates="familia", lazy="raise", cascade="all, delete-orphan"
    )


class ComposicaoFamiliar(UUIDPkMixin, TenantScopedMixin, TimestampMixin, Base):
    """Membership of a citizen in a family, with the kinship to the responsible."""
    __tablename__ = "composicao_familiar"
    __table_args__ = (
        UniqueConstraint("familia_id", "individuo_id", name="uq_composicao_familiar_familia_individuo"),
    )

    familia_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("familias.id", ondelete="CASCADE"), nullable=False, index=True
    )
    individuo_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("individuos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parentesco: Mapped[str] = mapped_column(Text, nullable=False)

    familia: Mapped[Familia] = relationship("Familia", back_populates="membros", lazy="raise")
    individuo: Mapped[Individuo] = relationship("Individuo", back_populates="composicoes", lazy="raise")
