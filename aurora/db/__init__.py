"""
Database package initializer exposing key public interfaces for configuration,
engine/session management, and tenant isolation helpers.
"""

from .base import Base
from .config import get_settings, Settings
from .session import (
    get_engine,
    get_async_session,
    get_session_maker,
    tenant_context,
)
from .tenancy import (
    TenantContext,
    TenantContextMissing,
    TenantIsolationViolation,
    bind_session,
    get_current_tenant_id,
    get_current_user_id,
    get_tenant_context,
    tenant_scope,
    unscoped,
)

# Import models to ensure they are registered with SQLAlchemy metadata
# when the db package is imported.
from . import models as models  # noqa: F401

__all__ = [
    "Base",
    "Settings",
    "get_settings",
    "get_engine",
    "get_async_session",
    "get_session_maker",
    "tenant_context",
    "TenantContext",
    "TenantContextMissing",
    "TenantIsolationViolation",
    "bind_session",
    "get_current_tenant_id",
    "get_current_user_id",
    "get_tenant_context",
    "tenant_scope",
    "unscoped",
    "models",
]
