from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class MonthCount(BaseModel):
    mes: str = Field(..., description="Month as YYYY-MM")
    count: int = Field(...)


class TipoDemandaCount(BaseModel):
    tipo_demanda: str = Field(...)
    count: int = Field(...)


class DayCount(BaseModel):
    dia: int = Field(..., ge=1, le=31)
    count: int = Field(...)


class DashboardMetrics(BaseModel):
    """KPIs shown on the GESTOR dashboard."""
    total_atendimentos: int = Field(...)
    total_familias: int = Field(...)
    total_individuos: int = Field(...)
    atendimentos_por_mes: List[MonthCount] = Field(default_factory=list, description="Last 12 months, newest first")
    atendimentos_por_tipo_demanda: List[TipoDemandaCount] = Field(default_factory=list)
    ultima_atualizacao: datetime = Field(..., description="When the figures were computed")


class RmaReport(BaseModel):
    """Relatório Mensal de Atendimentos for one month."""
    mes: int = Field(..., ge=1, le=12)
    ano: int = Field(..., ge=2000, le=2100)
    municipio: str = Field(..., description="Municipality name")
    total_atendimentos: int = Field(...)
    atendimentos_por_tipo_demanda: List[TipoDemandaCount] = Field(default_factory=list)
    atendimentos_por_dia: List[DayCount] = Field(default_factory=list)
    total_familias_atendidas: int = Field(...)
    total_individuos_atendidos: int = Field(...)
