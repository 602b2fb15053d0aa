from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.concurrency import run_in_threadpool

from aurora.core.errors import AppError
from aurora.core.logging import configure_logging, correlation_id_var, tenant_id_var, user_id_var
from aurora.core.settings import get_app_settings
from aurora.db.run_migrations import main as run_alembic
from aurora.db.seed import seed_all
from aurora.db.tenancy import TenantContextMissing, TenantIsolationViolation
from aurora.schemas.common import ErrorInfo, ErrorResponse, MessageResponse

# Routers
from aurora.api.routes.auth import router as auth_router
from aurora.api.routes.users import router as users_router
from aurora.api.routes.citizens import router as citizens_router
from aurora.api.routes.families import router as families_router
from aurora.api.routes.attachments import router as attachments_router
from aurora.api.routes.reports import router as reports_router
from aurora.api.routes.imports import router as imports_router

settings = get_app_settings()

# Configure structured logging once at import
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness probe."},
    {"name": "Auth", "description": "Magic-link sign-in, logout and current user."},
    {"name": "Users", "description": "Team management (GESTOR only)."},
    {"name": "Citizens", "description": "Citizen registration, profile and atendimentos."},
    {"name": "Families", "description": "Family composition."},
    {"name": "Attachments", "description": "Documents attached to families and citizens."},
    {"name": "Reports", "description": "Dashboard metrics and the monthly RMA report (GESTOR only)."},
    {"name": "Import", "description": "Bulk citizen import from CSV (GESTOR only)."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Assign a correlation id to every request for logging and error responses.
    Adds 'X-Correlation-ID' to every response. Tenant and user are filled in
    once the request is authenticated (see aurora.core.deps).
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    token_corr = correlation_id_var.set(corr)
    token_tenant = tenant_id_var.set(None)
    token_user = user_id_var.set(None)
    request.state.correlation_id = corr
    request.state.tenant_id = None

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)
        tenant_id_var.reset(token_tenant)
        user_id_var.reset(token_user)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    ts = datetime.now(tz=timezone.utc)
    corr = getattr(request.state, "correlation_id", None)
    tenant = getattr(request.state, "tenant_id", None)
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=corr,
        tenant_id=tenant,
        path=request.url.path,
        method=request.method,
        timestamp=ts,
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"), headers=headers)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Domain errors raised by services."""
    if exc.status_code >= 500:
        logger.error("Service failure: %s", exc.message, exc_info=exc.__cause__)
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Global handler for HTTPException to produce a standardized error envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=jsonable_errors(exc),
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Validation issues without the raw input and exception objects pydantic attaches."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


@app.exception_handler(TenantIsolationViolation)
async def tenant_violation_handler(request: Request, exc: TenantIsolationViolation):
    """A write crossed tenant boundaries; refused and logged."""
    logger.warning("Tenant isolation violation: %s", exc)
    return _build_error_response(
        request=request,
        status_code=403,
        error_type="tenant_isolation_violation",
        message="Operação não permitida para este município",
    )


@app.exception_handler(TenantContextMissing)
async def tenant_missing_handler(request: Request, exc: TenantContextMissing):
    """Tenant data touched without a tenant context: a programming error."""
    logger.error("Tenant context missing: %s", exc)
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="tenant_context_missing",
        message="An unexpected error occurred",
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Constraint violations that slipped past service checks (e.g. concurrent inserts)."""
    logger.warning("Integrity error: %s", exc.orig)
    return _build_error_response(
        request=request,
        status_code=409,
        error_type="conflict",
        message="O registro conflita com dados existentes",
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and optional seeding on service startup.

    Alembic's env.py drives its own event loop, so the upgrade runs in a worker thread.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            await run_in_threadpool(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception as exc:
            logger.exception("Migration step failed: %s", exc)
            # Do not crash the app in case of transient DB issues; rely on retries or later readiness probes.

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


# Include all routers under /api/v1
api_v1.include_router(auth_router)
api_v1.include_router(users_router)
api_v1.include_router(citizens_router)
api_v1.include_router(families_router)
api_v1.include_router(attachments_router)
api_v1.include_router(reports_router)
api_v1.include_router(imports_router)

# Attach api_v1 to app
app.include_router(api_v1)
