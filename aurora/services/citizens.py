from __future__ import annotations

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.errors import BadRequestError, ConflictError, NotFoundError
from aurora.db.base import utcnow
from aurora.db.models.attachments import Anexo
from aurora.db.models.citizens import Familia, Individuo
from aurora.db.models.enums import Parentesco
from aurora.db.models.security import User
from aurora.repositories.atendimentos import AtendimentoRepository
from aurora.repositories.attachments import AnexoRepository
from aurora.repositories.citizens import FamiliaRepository, IndividuoRepository
from aurora.schemas.atendimentos import AtendimentoCreate, AtendimentoPage, AtendimentoRead
from aurora.schemas.attachments import AnexoRead
from aurora.schemas.citizens import (
    CitizenCreated,
    CitizenProfile,
    CitizenSearchResult,
    CitizenSummary,
    FamiliaDetail,
    FamiliaRead,
    IndividuoCreate,
    IndividuoRead,
    IndividuoUpdate,
    MembroCreate,
    MembroRead,
)
from aurora.schemas.common import PageInfo
from aurora.services.base import BaseService

logger = logging.getLogger(__name__)

CITIZEN_NOT_FOUND = "Cidadão não encontrado"
FAMILY_NOT_FOUND = "Família não encontrada"
DUPLICATE_CPF = "Já existe um cidadão cadastrado com este CPF"
RECENT_ATENDIMENTOS = 10

_PERSONAL_FIELDS = (
    "nome_completo",
    "cpf",
    "data_nascimento",
    "sexo",
    "nome_mae",
    "nis",
    "rg",
    "titulo_eleitor",
    "carteira_trabalho",
)


def _personal_data(payload: IndividuoCreate | IndividuoUpdate) -> dict:
    data = {name: getattr(payload, name) for name in _PERSONAL_FIELDS}
    data["sexo"] = payload.sexo.value
    return data


def familia_detail(familia: Familia, anexos: Sequence[Anexo] = ()) -> FamiliaDetail:
    """Build the API view of a family loaded with responsible and members."""
    membros = [
        MembroRead(
            individuo_id=m.individuo_id,
            nome_completo=m.individuo.nome_completo,
            cpf=m.individuo.cpf,
            data_nascimento=m.individuo.data_nascimento,
            parentesco=m.parentesco,
        )
        for m in sorted(familia.membros, key=lambda m: m.created_at)
    ]
    return FamiliaDetail(
        id=familia.id,
        responsavel_familiar_id=familia.responsavel_familiar_id,
        endereco=familia.endereco,
        renda_familiar_total=familia.renda_familiar_total,
        created_at=familia.created_at,
        responsavel=CitizenSummary.model_validate(familia.responsavel),
        membros=membros,
        anexos=[AnexoRead.model_validate(a) for a in anexos],
    )


class CitizenService(BaseService):
    """Citizen registration, profile, families and visit history within the session's tenant."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.individuos = IndividuoRepository(session)
        self.familias = FamiliaRepository(session)
        self.atendimentos = AtendimentoRepository(session)
        self.anexos = AnexoRepository(session)

    async def _get_individuo(self, individuo_id: UUID) -> Individuo:
        individuo = await self.individuos.get(individuo_id)
        if individuo is None:
            raise NotFoundError(CITIZEN_NOT_FOUND)
        return individuo

    async def _get_familia(self, familia_id: UUID) -> Familia:
        familia = await self.familias.get(familia_id)
        if familia is None:
            raise NotFoundError(FAMILY_NOT_FOUND)
        return familia

    # PUBLIC_INTERFACE
    async def search(self, query: str, page: int = 1, limit: int = 20) -> CitizenSearchResult:
        """Search by name, CPF or NIS; ordered by name and paginated."""
        query = query.strip()
        if not query:
            raise BadRequestError("Informe um termo de busca")
        rows, total = await self.individuos.search(query, limit=limit, offset=(page - 1) * limit)
        return CitizenSearchResult(
            citizens=[CitizenSummary.model_validate(r) for r in rows],
            pagination=PageInfo.build(page, limit, total),
        )

    # PUBLIC_INTERFACE
    async def create(self, payload: IndividuoCreate) -> CitizenCreated:
        """
        Register a citizen. With create_as_responsavel a family headed by the
        citizen is created in the same transaction, including the RESPONSAVEL
        composition row.
        """
        if await self.individuos.get_by_cpf(payload.cpf) is not None:
            raise ConflictError(DUPLICATE_CPF)

        individuo = await self.individuos.create(**_personal_data(payload))
        familia = None
        if payload.create_as_responsavel:
            familia = await self.familias.create(
                responsavel_familiar_id=individuo.id,
                endereco=payload.endereco,
                renda_familiar_total=payload.renda_familiar_total,
            )
            await self.familias.add_member(familia.id, individuo.id, Parentesco.RESPONSAVEL.value)
        await self.individuos.commit()
        logger.info("Citizen %s created%s", individuo.id, " with family" if familia else "")

        return CitizenCreated(
            individuo=IndividuoRead.model_validate(individuo),
            familia=FamiliaRead.model_validate(familia) if familia else None,
        )

    # PUBLIC_INTERFACE
    async def get_profile(self, individuo_id: UUID) -> CitizenProfile:
        """Personal data, families, recent atendimentos and attachments of a citizen."""
        individuo = await self._get_individuo(individuo_id)
        member_of = await self.familias.list_where_member(individuo_id)
        headed = await self.familias.list_where_responsavel(individuo_id)
        recentes, _ = await self.atendimentos.list_for_individuo(individuo_id, limit=RECENT_ATENDIMENTOS)
        anexos = await self.anexos.list_for_individuo(individuo_id)
        return CitizenProfile(
            individuo=IndividuoRead.model_validate(individuo),
            familias=[familia_detail(f) for f in member_of],
            familias_responsavel=[familia_detail(f) for f in headed],
            atendimentos_recentes=[AtendimentoRead.model_validate(a) for a in recentes],
            anexos=[AnexoRead.model_validate(a) for a in anexos],
        )

    # PUBLIC_INTERFACE
    async def update(self, individuo_id: UUID, payload: IndividuoUpdate) -> Individuo:
        """Replace personal data; the CPF must stay unique among the other citizens."""
        individuo = await self._get_individuo(individuo_id)
        other = await self.individuos.get_by_cpf(payload.cpf)
        if other is not None and other.id != individuo.id:
            raise ConflictError(DUPLICATE_CPF)
        for name, value in _personal_data(payload).items():
            setattr(individuo, name, value)
        await self.individuos.commit()
        return individuo

    # PUBLIC_INTERFACE
    async def create_atendimento(self, individuo_id: UUID, payload: AtendimentoCreate, user: User) -> AtendimentoRead:
        """Log a visit for the citizen on behalf of the acting user."""
        await self._get_individuo(individuo_id)
        created = await self.atendimentos.create(
            individuo_id=individuo_id,
            usuario_id=user.id,
            data=payload.data or utcnow(),
            tipo_demanda=payload.tipo_demanda.value,
            encaminhamento=payload.encaminhamento,
            parecer_social=payload.parecer_social,
        )
        await self.atendimentos.commit()
        logger.info("Atendimento %s registered for citizen %s", created.id, individuo_id)
        return AtendimentoRead.model_validate(await self.atendimentos.get_with_usuario(created.id))

    # PUBLIC_INTERFACE
    async def list_atendimentos(self, individuo_id: UUID, page: int = 1, limit: int = 20) -> AtendimentoPage:
        """Full visit history, newest first."""
        await self._get_individuo(individuo_id)
        rows, total = await self.atendimentos.list_for_individuo(
            individuo_id, limit=limit, offset=(page - 1) * limit
        )
        return AtendimentoPage(
            atendimentos=[AtendimentoRead.model_validate(a) for a in rows],
            pagination=PageInfo.build(page, limit, total),
        )

    # PUBLIC_INTERFACE
    async def get_family(self, familia_id: UUID) -> FamiliaDetail:
        """Family with responsible, members and attachments."""
        familia = await self.familias.get(familia_id, with_members=True)
        if familia is None:
            raise NotFoundError(FAMILY_NOT_FOUND)
        return familia_detail(familia, await self.anexos.list_for_familia(familia_id))

    # PUBLIC_INTERFACE
    async def add_member(self, familia_id: UUID, payload: MembroCreate) -> FamiliaDetail:
        """Add a citizen to a family; RESPONSAVEL is reserved for the responsible person."""
        await self._get_familia(familia_id)
        if payload.parentesco == Parentesco.RESPONSAVEL:
            raise BadRequestError("O parentesco RESPONSAVEL é reservado ao responsável familiar")
        await self._get_individuo(payload.individuo_id)
        if await self.familias.get_member(familia_id, payload.individuo_id) is not None:
            raise ConflictError("Cidadão já é membro desta família")

        await self.familias.add_member(familia_id, payload.individuo_id, payload.parentesco.value)
        await self.familias.commit()
        return await self.get_family(familia_id)

    # PUBLIC_INTERFACE
    async def remove_member(self, familia_id: UUID, individuo_id: UUID) -> FamiliaDetail:
        """Remove a member; the responsible person stays."""
        familia = await self._get_familia(familia_id)
        if individuo_id == familia.responsavel_familiar_id:
            raise BadRequestError("O responsável familiar não pode ser removido da família")
        removed = await self.familias.remove_member(familia_id, individuo_id)
        if not removed:
            raise NotFoundError("Cidadão não é membro desta família")
        await self.familias.commit()
        return await self.get_family(familia_id)

