from __future__ import annotations

from typing import List, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from aurora.db.models.atendimentos import Atendimento
from .base import BaseRepository


class AtendimentoRepository(BaseRepository):
    """Repository for atendimentos (service visits)."""

    async def create(self, **fields) -> Atendimento:
        atendimento = Atendimento(**fields)
        await self.add(atendimento)
        await self.flush()
        return atendimento

    async def get_with_usuario(self, atendimento_id: UUID) -> Atendimento:
        stmt = (
            select(Atendimento)
            .where(Atendimento.id == atendimento_id)
            .options(selectinload(Atendimento.usuario))
            .execution_options(populate_existing=True)
        )
        res = await self.execute(stmt)
        return res.scalar_one()

    async def list_for_individuo(
        self, individuo_id: UUID, *, limit: int, offset: int = 0
    ) -> Tuple[List[Atendimento], int]:
        """Newest first, with the técnico loaded."""
        stmt = select(Atendimento).where(Atendimento.individuo_id == individuo_id)
        total = await self.count(stmt)
        stmt = (
            stmt.options(selectinload(Atendimento.usuario))
            .order_by(Atendimento.data.desc(), Atendimento.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        res = await self.scalars(stmt)
        return list(res), total
