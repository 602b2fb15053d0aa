from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from aurora.db.models.enums import Parentesco, Sexo
from .atendimentos import AtendimentoRead
from .attachments import AnexoRead
from .common import PageInfo, only_digits


class CitizenSummary(BaseModel):
    """Search hit."""
    id: UUID = Field(..., description="Citizen id")
    nome_completo: str = Field(...)
    cpf: str = Field(..., description="CPF, digits only")
    data_nascimento: date = Field(...)
    nis: Optional[str] = Field(None, description="NIS, digits only")

    class Config:
        from_attributes = True


class CitizenSearchResult(BaseModel):
    """Paged search response."""
    citizens: List[CitizenSummary] = Field(default_factory=list)
    pagination: PageInfo = Field(...)


class IndividuoBase(BaseModel):
    """Personal and CadÚnico data shared by create and update payloads."""
    nome_completo: str = Field(..., description="Full name (at least 3 characters)")
    cpf: str = Field(..., description="CPF; formatting is stripped")
    data_nascimento: date = Field(..., description="Birth date")
    sexo: Sexo = Field(...)
    nome_mae: Optional[str] = Field(None, description="Mother's name")
    nis: Optional[str] = Field(None, description="NIS; formatting is stripped")
    rg: Optional[str] = Field(None)
    titulo_eleitor: Optional[str] = Field(None)
    carteira_trabalho: Optional[str] = Field(None)

    @field_validator("nome_completo")
    @classmethod
    def _check_nome(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Nome deve ter ao menos 3 caracteres")
        return v

    @field_validator("cpf", mode="before")
    @classmethod
    def _normalize_cpf(cls, v):
        digits = only_digits(str(v) if v is not None else "")
        if len(digits) != 11:
            raise ValueError("CPF deve conter 11 dígitos")
        return digits

    @field_validator("nis", mode="before")
    @classmethod
    def _normalize_nis(cls, v):
        if v is None or str(v).strip() == "":
            return None
        digits = only_digits(str(v))
        if len(digits) != 11:
            raise ValueError("NIS deve conter 11 dígitos")
        return digits

    @field_validator("nome_mae", "rg", "titulo_eleitor", "carteira_trabalho", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class IndividuoCreate(IndividuoBase):
    """Create a citizen, optionally as head of a new family."""
    create_as_responsavel: bool = Field(False, description="Also create a family headed by this citizen")
    endereco: Optional[str] = Field(None, description="Family address; required with create_as_responsavel")
    renda_familiar_total: Optional[Decimal] = Field(None, ge=0, description="Total family income")

    @model_validator(mode="after")
    def _check_family(self) -> "IndividuoCreate":
        if self.create_as_responsavel:
            if not self.endereco or len(self.endereco.strip()) < 5:
                raise ValueError("Endereço deve ter ao menos 5 caracteres")
            self.endereco = self.endereco.strip()
        return self


class IndividuoUpdate(IndividuoBase):
    """Replace personal and CadÚnico data."""


class IndividuoRead(BaseModel):
    """Citizen record."""
    id: UUID = Field(...)
    nome_completo: str = Field(...)
    cpf: str = Field(...)
    data_nascimento: date = Field(...)
    sexo: Sexo = Field(...)
    nome_mae: Optional[str] = Field(None)
    nis: Optional[str] = Field(None)
    rg: Optional[str] = Field(None)
    titulo_eleitor: Optional[str] = Field(None)
    carteira_trabalho: Optional[str] = Field(None)
    created_by: Optional[UUID] = Field(None)
    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)

    class Config:
        from_attributes = True


class FamiliaRead(BaseModel):
    """Family record without members."""
    id: UUID = Field(...)
    responsavel_familiar_id: UUID = Field(...)
    endereco: str = Field(...)
    renda_familiar_total: Optional[Decimal] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class MembroRead(BaseModel):
    """A family member with kinship."""
    individuo_id: UUID = Field(...)
    nome_completo: str = Field(...)
    cpf: str = Field(...)
    data_nascimento: date = Field(...)
    parentesco: Parentesco = Field(...)


class FamiliaDetail(FamiliaRead):
    """Family with its responsible person and members."""
    responsavel: CitizenSummary = Field(...)
    membros: List[MembroRead] = Field(default_factory=list)
    anexos: List[AnexoRead] = Field(default_factory=list, description="Family documents, newest first")


class CitizenCreated(BaseModel):
    """Result of citizen creation."""
    individuo: IndividuoRead = Field(...)
    familia: Optional[FamiliaRead] = Field(None)


class CitizenProfile(BaseModel):
    """Everything the profile screen shows for a citizen."""
    individuo: IndividuoRead = Field(...)
    familias: List[FamiliaDetail] = Field(default_factory=list, description="Families the citizen belongs to")
    familias_responsavel: List[FamiliaDetail] = Field(
        default_factory=list, description="Families headed by the citizen"
    )
    atendimentos_recentes: List[AtendimentoRead] = Field(default_factory=list, description="10 most recent")
    anexos: List[AnexoRead] = Field(default_factory=list)


class MembroCreate(BaseModel):
    """Add a citizen to a family."""
    individuo_id: UUID = Field(...)
    parentesco: Parentesco = Field(...)
