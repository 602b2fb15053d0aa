from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from aurora.core.deps import get_tenant_session, require_gestor
from aurora.db.models.security import User
from aurora.schemas.reports import DashboardMetrics, RmaReport
from aurora.services.reporting import ReportingService
from aurora.services.rma_export import (
    PDF_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    render_rma_excel,
    render_rma_pdf,
    rma_filename,
)

# PUBLIC_INTERFACE
router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)


# PUBLIC_INTERFACE
@router.get(
    "/dashboard",
    response_model=DashboardMetrics,
    summary="Dashboard metrics",
    description="Totals and trends for the municipality. Cached for one hour; refresh=true recomputes.",
)
async def dashboard(
    refresh: bool = Query(False, description="Bypass and repopulate the cache"),
    user: User = Depends(require_gestor),
    session: AsyncSession = Depends(get_tenant_session),
) -> DashboardMetrics:
    return await ReportingService(session).dashboard(user.tenant_id, refresh=refresh)


# PUBLIC_INTERFACE
@router.get(
    "/rma",
    response_model=RmaReport,
    summary="RMA report",
    description="Relatório Mensal de Atendimentos for the given month. Future months are rejected.",
)
async def rma(
    mes: int = Query(..., ge=1, le=12, description="Month (1-12)"),
    ano: int = Query(..., ge=2000, le=2100, description="Year"),
    user: User = Depends(require_gestor),
    session: AsyncSession = Depends(get_tenant_session),
) -> RmaReport:
    return await ReportingService(session).rma(user, mes, ano)


# PUBLIC_INTERFACE
@router.get(
    "/rma/export",
    summary="Export RMA",
    description="Download the RMA as PDF or Excel (RMA_<Mês>_<ano>.pdf|xlsx).",
    response_class=Response,
)
async def export_rma(
    mes: int = Query(..., ge=1, le=12, description="Month (1-12)"),
    ano: int = Query(..., ge=2000, le=2100, description="Year"),
    format: str = Query("pdf", pattern="^(pdf|xlsx)$", description="Export format: pdf | xlsx"),
    user: User = Depends(require_gestor),
    session: AsyncSession = Depends(get_tenant_session),
) -> Response:
    report = await ReportingService(session).rma(user, mes, ano)
    if format == "xlsx":
        content = await run_in_threadpool(render_rma_excel, report)
        media_type = XLSX_MEDIA_TYPE
    else:
        content = await run_in_threadpool(render_rma_pdf, report)
        media_type = PDF_MEDIA_TYPE
    filename = rma_filename(mes, ano, format)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )
