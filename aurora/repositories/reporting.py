from __future__ import annotations

from datetime import datetime
from typing import List, Tuple

from sqlalchemy import distinct, extract, func, select

from aurora.db.models.atendimentos import Atendimento
from aurora.db.models.citizens import ComposicaoFamiliar, Familia, Individuo
from .base import BaseRepository


class ReportingRepository(BaseRepository):
    """
    Aggregate queries for the dashboard and the RMA report.

    All aggregation runs in the database (COUNT / GROUP BY); the tenant filter
    is added by the session hooks like for any other query.
    """

    async def total_atendimentos(self) -> int:
        res = await self.execute(select(func.count(Atendimento.id)))
        return int(res.scalar_one())

    async def total_familias(self) -> int:
        res = await self.execute(select(func.count(Familia.id)))
        return int(res.scalar_one())

    async def total_individuos(self) -> int:
        res = await self.execute(select(func.count(Individuo.id)))
        return int(res.scalar_one())

    async def atendimentos_per_month(self, since: datetime) -> List[Tuple[int, int, int]]:
        """(year, month, count) rows since the given instant, newest month first."""
        year = extract("year", Atendimento.data)
        month = extract("month", Atendimento.data)
        stmt = (
            select(year.label("ano"), month.label("mes"), func.count(Atendimento.id).label("total"))
            .where(Atendimento.data >= since)
            .group_by(year, month)
            .order_by(year.desc(), month.desc())
        )
        res = await self.execute(stmt)
        return [(int(r.ano), int(r.mes), int(r.total)) for r in res.all()]

    async def atendimentos_per_tipo(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> List[Tuple[str, int]]:
        """(tipo_demanda, count) rows, highest count first."""
        total = func.count(Atendimento.id)
        stmt = select(Atendimento.tipo_demanda, total.label("total"))
        stmt = self._in_period(stmt, start, end)
        stmt = stmt.group_by(Atendimento.tipo_demanda).order_by(total.desc(), Atendimento.tipo_demanda)
        res = await self.execute(stmt)
        return [(r.tipo_demanda, int(r.total)) for r in res.all()]

    async def atendimentos_in_period(self, start: datetime, end: datetime) -> int:
        stmt = self._in_period(select(func.count(Atendimento.id)), start, end)
        res = await self.execute(stmt)
        return int(res.scalar_one())

    async def atendimentos_per_day(self, start: datetime, end: datetime) -> List[Tuple[int, int]]:
        """(day of month, count) rows in ascending day order."""
        day = extract("day", Atendimento.data)
        stmt = select(day.label("dia"), func.count(Atendimento.id).label("total"))
        stmt = self._in_period(stmt, start, end).group_by(day).order_by(day)
        res = await self.execute(stmt)
        return [(int(r.dia), int(r.total)) for r in res.all()]

    async def individuos_atendidos(self, start: datetime, end: datetime) -> int:
        stmt = self._in_period(select(func.count(distinct(Atendimento.individuo_id))), start, end)
        res = await self.execute(stmt)
        return int(res.scalar_one())

    async def familias_atendidas(self, start: datetime, end: datetime) -> int:
        """Distinct families having at least one member served in the period."""
        served = self._in_period(select(Atendimento.individuo_id), start, end)
        stmt = select(func.count(distinct(ComposicaoFamiliar.familia_id))).where(
            ComposicaoFamiliar.individuo_id.in_(served)
        )
        res = await self.execute(stmt)
        return int(res.scalar_one())

    @staticmethod
    def _in_period(stmt, start: datetime | None, end: datetime | None):
        if start is not None:
            stmt = stmt.where(Atendimento.data >= start)
        if end is not None:
            stmt = stmt.where(Atendimento.data < end)
        return stmt
