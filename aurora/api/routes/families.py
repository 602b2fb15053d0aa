from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.deps import get_tenant_session, require_user
from aurora.schemas.citizens import FamiliaDetail, MembroCreate
from aurora.services.citizens import CitizenService

router = APIRouter(prefix="/families", tags=["Families"], dependencies=[Depends(require_user)])


# PUBLIC_INTERFACE
@router.get(
    "/{familia_id}",
    response_model=FamiliaDetail,
    summary="Family detail",
    description="Family with its responsible person and members.",
)
async def get_family(
    familia_id: UUID = Path(..., description="Family ID"),
    session: AsyncSession = Depends(get_tenant_session),
) -> FamiliaDetail:
    return await CitizenService(session).get_family(familia_id)


# PUBLIC_INTERFACE
@router.post(
    "/{familia_id}/members",
    response_model=FamiliaDetail,
    status_code=201,
    summary="Add family member",
    description="Add a citizen to the family with the given kinship. RESPONSAVEL is reserved.",
)
async def add_member(
    payload: MembroCreate,
    familia_id: UUID = Path(..., description="Family ID"),
    session: AsyncSession = Depends(get_tenant_session),
) -> FamiliaDetail:
    return await CitizenService(session).add_member(familia_id, payload)


# PUBLIC_INTERFACE
@router.delete(
    "/{familia_id}/members/{individuo_id}",
    response_model=FamiliaDetail,
    summary="Remove family member",
    description="Remove a member from the family. The responsible person cannot be removed.",
)
async def remove_member(
    familia_id: UUID = Path(..., description="Family ID"),
    individuo_id: UUID = Path(..., description="Citizen ID"),
    session: AsyncSession = Depends(get_tenant_session),
) -> FamiliaDetail:
    return await CitizenService(session).remove_member(familia_id, individuo_id)
