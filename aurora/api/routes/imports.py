from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.deps import get_tenant_session, require_gestor
from aurora.schemas.imports import ImportResult
from aurora.services.imports import TEMPLATE_FILENAME, ImportService, build_template

router = APIRouter(prefix="/import", tags=["Import"], dependencies=[Depends(require_gestor)])


# PUBLIC_INTERFACE
@router.get(
    "/template",
    summary="CSV template",
    description="Download the citizen import template with headers and one example row.",
    response_class=Response,
)
async def download_template() -> Response:
    return Response(
        content=build_template(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )


# PUBLIC_INTERFACE
@router.post(
    "/citizens",
    response_model=ImportResult,
    summary="Import citizens",
    description=(
        "Validate and import a CSV of citizens. Any validation problem is reported per line "
        "and nothing is imported; valid files are inserted in batches."
    ),
)
async def import_citizens(
    file: UploadFile = File(..., description="CSV file"),
    batch_size: int = Form(100, ge=1, le=500),
    session: AsyncSession = Depends(get_tenant_session),
) -> ImportResult:
    content = await file.read()
    return await ImportService(session).import_citizens(content, batch_size=batch_size)
