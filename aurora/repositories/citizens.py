from __future__ import annotations

from typing import Iterable, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import selectinload

from aurora.db.models.citizens import ComposicaoFamiliar, Familia, Individuo
from .base import BaseRepository


def _with_members():
    return (
        selectinload(Familia.responsavel),
        selectinload(Familia.membros).selectinload(ComposicaoFamiliar.individuo),
    )


class IndividuoRepository(BaseRepository):
    """Repository for citizens (Individuo)."""

    async def search(self, query: str, *, limit: int, offset: int) -> Tuple[List[Individuo], int]:
        """
        Case-insensitive substring search on name; when the query carries digits
        also matches CPF and NIS (stored digits-only). Ordered by name.
        """
        conditions = [Individuo.nome_completo.icontains(query, autoescape=True)]
        digits = "".join(ch for ch in query if ch.isdigit())
        if digits:
            conditions.append(Individuo.cpf.contains(digits))
            conditions.append(Individuo.nis.contains(digits))

        stmt = select(Individuo).where(or_(*conditions))
        total = await self.count(stmt)
        stmt = stmt.order_by(Individuo.nome_completo).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res), total

    async def get(self, individuo_id: UUID) -> Optional[Individuo]:
        stmt = select(Individuo).where(Individuo.id == individuo_id)
        return await self.scalar_one_or_none(stmt)

    async def get_by_cpf(self, cpf: str) -> Optional[Individuo]:
        stmt = select(Individuo).where(Individuo.cpf == cpf)
        return await self.scalar_one_or_none(stmt)

    async def existing_cpfs(self, cpfs: Iterable[str]) -> Set[str]:
        """Return which of the given CPFs are already registered."""
        wanted = list(set(cpfs))
        if not wanted:
            return set()
        found: Set[str] = set()
        # Chunked to stay under driver bind-parameter limits.
        for start in range(0, len(wanted), 500):
            chunk = wanted[start:start + 500]
            res = await self.scalars(select(Individuo.cpf).where(Individuo.cpf.in_(chunk)))
            found.update(res)
        return found

    async def create(self, **fields) -> Individuo:
        individuo = Individuo(**fields)
        await self.add(individuo)
        await self.flush()
        return individuo


class FamiliaRepository(BaseRepository):
    """Repository for families and their composition."""

    async def create(self, *, responsavel_familiar_id: UUID, endereco: str, renda_familiar_total=None) -> Familia:
        familia = Familia(
            responsavel_familiar_id=responsavel_familiar_id,
            endereco=endereco,
            renda_familiar_total=renda_familiar_total,
        )
        await self.add(familia)
        await self.flush()
        return familia

    async def get(self, familia_id: UUID, *, with_members: bool = False) -> Optional[Familia]:
        stmt = select(Familia).where(Familia.id == familia_id)
        if with_members:
            stmt = stmt.options(*_with_members()).execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def list_where_member(self, individuo_id: UUID) -> List[Familia]:
        stmt = (
            select(Familia)
            .join(ComposicaoFamiliar, ComposicaoFamiliar.familia_id == Familia.id)
            .where(ComposicaoFamiliar.individuo_id == individuo_id)
            .options(*_with_members())
            .order_by(Familia.created_at)
        )
        res = await self.scalars(stmt)
        return list(res.unique())

    async def list_where_responsavel(self, individuo_id: UUID) -> List[Familia]:
        stmt = (
            select(Familia)
            .where(Familia.responsavel_familiar_id == individuo_id)
            .options(*_with_members())
            .order_by(Familia.created_at)
        )
        res = await self.scalars(stmt)
        return list(res)

    async def add_member(self, familia_id: UUID, individuo_id: UUID, parentesco: str) -> ComposicaoFamiliar:
        membro = ComposicaoFamiliar(familia_id=familia_id, individuo_id=individuo_id, parentesco=parentesco)
        await self.add(membro)
        await self.flush()
        return membro

    async def get_member(self, familia_id: UUID, individuo_id: UUID) -> Optional[ComposicaoFamiliar]:
        stmt = select(ComposicaoFamiliar).where(
            ComposicaoFamiliar.familia_id == familia_id,
            ComposicaoFamiliar.individuo_id == individuo_id,
        )
        return await self.scalar_one_or_none(stmt)

    async def remove_member(self, familia_id: UUID, individuo_id: UUID) -> int:
        stmt = delete(ComposicaoFamiliar).where(
            ComposicaoFamiliar.familia_id == familia_id,
            ComposicaoFamiliar.individuo_id == individuo_id,
        )
        result = await self.execute(stmt)
        return int(result.rowcount or 0)
