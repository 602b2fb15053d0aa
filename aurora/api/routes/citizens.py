from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.deps import get_tenant_session, require_user
from aurora.db.models.security import User
from aurora.schemas.atendimentos import AtendimentoCreate, AtendimentoPage, AtendimentoRead
from aurora.schemas.citizens import (
    CitizenCreated,
    CitizenProfile,
    CitizenSearchResult,
    IndividuoCreate,
    IndividuoRead,
    IndividuoUpdate,
)
from aurora.services.citizens import CitizenService

router = APIRouter(prefix="/citizens", tags=["Citizens"], dependencies=[Depends(require_user)])


# PUBLIC_INTERFACE
@router.get(
    "/search",
    response_model=CitizenSearchResult,
    summary="Search citizens",
    description="Case-insensitive search on name; queries with digits also match CPF and NIS.",
)
async def search_citizens(
    query: str = Query(..., min_length=1, description="Name, CPF or NIS fragment"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_tenant_session),
) -> CitizenSearchResult:
    return await CitizenService(session).search(query, page=page, limit=limit)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=CitizenCreated,
    status_code=201,
    summary="Create citizen",
    description="Register a citizen; with create_as_responsavel also create a family headed by them.",
)
async def create_citizen(
    payload: IndividuoCreate,
    session: AsyncSession = Depends(get_tenant_session),
) -> CitizenCreated:
    return await CitizenService(session).create(payload)


# PUBLIC_INTERFACE
@router.get(
    "/{individuo_id}",
    response_model=CitizenProfile,
    summary="Citizen profile",
    description="Personal data, families, 10 most recent atendimentos and attachments.",
)
async def get_citizen(
    individuo_id: UUID = Path(..., description="Citizen ID"),
    session: AsyncSession = Depends(get_tenant_session),
) -> CitizenProfile:
    return await CitizenService(session).get_profile(individuo_id)


# PUBLIC_INTERFACE
@router.put(
    "/{individuo_id}",
    response_model=IndividuoRead,
    summary="Update citizen",
    description="Replace personal and CadÚnico data.",
)
async def update_citizen(
    payload: IndividuoUpdate,
    individuo_id: UUID = Path(..., description="Citizen ID"),
    session: AsyncSession = Depends(get_tenant_session),
) -> IndividuoRead:
    individuo = await CitizenService(session).update(individuo_id, payload)
    return IndividuoRead.model_validate(individuo)


# PUBLIC_INTERFACE
@router.post(
    "/{individuo_id}/atendimentos",
    response_model=AtendimentoRead,
    status_code=201,
    summary="Register atendimento",
    description="Log a visit for the citizen on behalf of the current user.",
)
async def create_atendimento(
    payload: AtendimentoCreate,
    individuo_id: UUID = Path(..., description="Citizen ID"),
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> AtendimentoRead:
    return await CitizenService(session).create_atendimento(individuo_id, payload, user)


# PUBLIC_INTERFACE
@router.get(
    "/{individuo_id}/atendimentos",
    response_model=AtendimentoPage,
    summary="Atendimento history",
    description="Full visit history of the citizen, newest first.",
)
async def list_atendimentos(
    individuo_id: UUID = Path(..., description="Citizen ID"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_tenant_session),
) -> AtendimentoPage:
    return await CitizenService(session).list_atendimentos(individuo_id, page=page, limit=limit)
