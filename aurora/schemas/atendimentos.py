from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from aurora.db.models.enums import TipoDemanda, UserRole
from .common import PageInfo


class AtendimentoCreate(BaseModel):
    """Register a service/visit for a citizen."""
    tipo_demanda: TipoDemanda = Field(...)
    encaminhamento: str = Field(..., description="Referral/actions taken (10-5000 characters)")
    parecer_social: str = Field(..., description="Social worker assessment (10-5000 characters)")
    data: Optional[datetime] = Field(None, description="When it happened; defaults to now")

    @field_validator("encaminhamento")
    @classmethod
    def _check_encaminhamento(cls, v: str) -> str:
        return _check_text(v, "Encaminhamento")

    @field_validator("parecer_social")
    @classmethod
    def _check_parecer(cls, v: str) -> str:
        return _check_text(v, "Parecer social")


def _check_text(value: str, label: str) -> str:
    value = value.strip()
    if len(value) < 10:
        raise ValueError(f"{label} deve ter ao menos 10 caracteres")
    if len(value) > 5000:
        raise ValueError(f"{label} deve ter no máximo 5000 caracteres")
    return value


class Tecnico(BaseModel):
    """User that registered an atendimento."""
    id: UUID = Field(...)
    name: str = Field(...)
    role: UserRole = Field(...)

    class Config:
        from_attributes = True


class AtendimentoRead(BaseModel):
    """Atendimento with its técnico."""
    id: UUID = Field(...)
    individuo_id: UUID = Field(...)
    data: datetime = Field(...)
    tipo_demanda: TipoDemanda = Field(...)
    encaminhamento: str = Field(...)
    parecer_social: str = Field(...)
    usuario: Tecnico = Field(...)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class AtendimentoPage(BaseModel):
    """Paged visit history."""
    atendimentos: List[AtendimentoRead] = Field(default_factory=list)
    pagination: PageInfo = Field(...)
