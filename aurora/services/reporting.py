from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.errors import BadRequestError
from aurora.core.settings import get_app_settings
from aurora.db.models.security import User
from aurora.repositories.reporting import ReportingRepository
from aurora.repositories.security import SecurityRepository
from aurora.schemas.reports import DashboardMetrics, DayCount, MonthCount, RmaReport, TipoDemandaCount
from aurora.services.base import BaseService
from aurora.services.cache import TTLCache

logger = logging.getLogger(__name__)

dashboard_cache = TTLCache(get_app_settings().DASHBOARD_CACHE_TTL_SECONDS)


# PUBLIC_INTERFACE
def month_bounds(ano: int, mes: int) -> Tuple[datetime, datetime]:
    """[first instant of the month, first instant of the next month) in UTC."""
    start = datetime(ano, mes, 1, tzinfo=timezone.utc)
    end = datetime(ano + 1, 1, 1, tzinfo=timezone.utc) if mes == 12 else datetime(ano, mes + 1, 1, tzinfo=timezone.utc)
    return start, end


def _months_back(now: datetime, months: int) -> datetime:
    """First instant of the month `months` months before now's month."""
    index = now.year * 12 + (now.month - 1) - months
    return datetime(index // 12, index % 12 + 1, 1, tzinfo=timezone.utc)


class ReportingService(BaseService):
    """Dashboard KPIs and the monthly RMA report of the session's tenant."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = ReportingRepository(session)

    # PUBLIC_INTERFACE
    async def dashboard(self, tenant_id: UUID, refresh: bool = False) -> DashboardMetrics:
        """
        Return dashboard metrics, served from a per-tenant cache for
        DASHBOARD_CACHE_TTL_SECONDS. refresh=True recomputes and repopulates it.
        """
        key = dashboard_cache.dashboard_key(tenant_id)
        if not refresh:
            cached = await dashboard_cache.get(key)
            if cached is not None:
                return cached
        metrics = await self._compute_dashboard()
        await dashboard_cache.set(key, metrics)
        logger.info("Dashboard metrics computed (refresh=%s)", refresh)
        return metrics

    async def _compute_dashboard(self) -> DashboardMetrics:
        now = datetime.now(tz=timezone.utc)
        per_month = await self.repo.atendimentos_per_month(_months_back(now, 11))
        per_tipo = await self.repo.atendimentos_per_tipo()
        return DashboardMetrics(
            total_atendimentos=await self.repo.total_atendimentos(),
            total_familias=await self.repo.total_familias(),
            total_individuos=await self.repo.total_individuos(),
            atendimentos_por_mes=[MonthCount(mes=f"{ano:04d}-{mes:02d}", count=n) for ano, mes, n in per_month[:12]],
            atendimentos_por_tipo_demanda=[TipoDemandaCount(tipo_demanda=t, count=n) for t, n in per_tipo],
            ultima_atualizacao=now,
        )

    # PUBLIC_INTERFACE
    async def rma(self, user: User, mes: int, ano: int) -> RmaReport:
        """
        Relatório Mensal de Atendimentos for one month.

        Raises:
            BadRequestError: the month lies in the future.
        """
        now = datetime.now(tz=timezone.utc)
        if (ano, mes) > (now.year, now.month):
            raise BadRequestError("Não é possível gerar relatório para mês/ano futuro")

        start, end = month_bounds(ano, mes)
        tenant = await SecurityRepository(self.session).get_tenant(user.tenant_id)
        per_tipo = await self.repo.atendimentos_per_tipo(start, end)
        per_day = await self.repo.atendimentos_per_day(start, end)
        return RmaReport(
            mes=mes,
            ano=ano,
            municipio=tenant.name if tenant is not None else "",
            total_atendimentos=await self.repo.atendimentos_in_period(start, end),
            atendimentos_por_tipo_demanda=[TipoDemandaCount(tipo_demanda=t, count=n) for t, n in per_tipo],
            atendimentos_por_dia=[DayCount(dia=d, count=n) for d, n in per_day],
            total_familias_atendidas=await self.repo.familias_atendidas(start, end),
            total_individuos_atendidos=await self.repo.individuos_atendidos(start, end),
        )
