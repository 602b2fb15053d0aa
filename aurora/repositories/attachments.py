from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from aurora.db.models.attachments import Anexo
from .base import BaseRepository


class AnexoRepository(BaseRepository):
    """Repository for attachment metadata."""

    async def create(self, **fields) -> Anexo:
        anexo = Anexo(**fields)
        await self.add(anexo)
        await self.flush()
        return anexo

    async def get(self, anexo_id: UUID) -> Optional[Anexo]:
        stmt = select(Anexo).where(Anexo.id == anexo_id)
        return await self.scalar_one_or_none(stmt)

    async def list_for_individuo(self, individuo_id: UUID) -> List[Anexo]:
        stmt = select(Anexo).where(Anexo.individuo_id == individuo_id).order_by(Anexo.uploaded_at.desc())
        res = await self.scalars(stmt)
        return list(res)

    async def list_for_familia(self, familia_id: UUID) -> List[Anexo]:
        stmt = select(Anexo).where(Anexo.familia_id == familia_id).order_by(Anexo.uploaded_at.desc())
        res = await self.scalars(stmt)
        return list(res)
