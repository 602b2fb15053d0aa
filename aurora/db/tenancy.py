"""
Tenant isolation for the ORM.

Every model deriving from TenantScopedMixin belongs to exactly one tenant
(municipality). The hooks registered here on the SQLAlchemy Session class make
that invisible to application code:

- on flush, new rows receive the current tenant_id (and created_by for
  AuditableMixin models); writes touching another tenant's rows are rejected;
- on execute, every ORM SELECT gets `tenant_id = :current` criteria for all
  tenant-scoped entities it references (joins, subqueries and relationship
  loads included) and every ORM bulk UPDATE/DELETE gets the same WHERE clause.

The current tenant comes from a TenantContext, either bound to a session
(request handling, see aurora.core.deps) or to the running task through
contextvars (tenant_scope). Touching tenant-scoped data with no context is an
error, unless the caller explicitly opted out with unscoped().
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Set, Union
from uuid import UUID

from sqlalchemy import Table, event, inspect
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria
from sqlalchemy.sql import visitors
from sqlalchemy.sql.elements import ColumnClause

from aurora.db.base import AuditableMixin, Base, TenantScopedMixin

logger = logging.getLogger(__name__)

SESSION_INFO_KEY = "tenant_context"

IdLike = Union[str, UUID]


@dataclass(frozen=True)
class TenantContext:
    """The tenant (municipality) and acting user a unit of work runs for."""

    tenant_id: UUID
    user_id: Optional[UUID] = None


class TenantContextMissing(RuntimeError):
    """Raised when tenant-scoped data is touched without a tenant context."""

    def __init__(self, action: str, model: str) -> None:
        super().__init__(f"Multi-tenant violation: {action} on {model} requires tenant context")
        self.action = action
        self.model = model


class TenantIsolationViolation(RuntimeError):
    """Raised when a write targets a row owned by another tenant."""


_current_context: ContextVar[Optional[TenantContext]] = ContextVar("tenant_context", default=None)
_bypass: ContextVar[bool] = ContextVar("tenant_bypass", default=False)


def _as_uuid(value: Optional[IdLike]) -> Optional[UUID]:
    if value is None or isinstance(value, UUID):
        return value
    return UUID(str(value))


# PUBLIC_INTERFACE
@contextmanager
def tenant_scope(tenant_id: IdLike, user_id: Optional[IdLike] = None) -> Iterator[TenantContext]:
    """
    Bind a TenantContext to the current execution context.

    The binding follows the running task across await points and is invisible
    to concurrently running tasks. The previous context is restored on exit.
    """
    ctx = TenantContext(tenant_id=_as_uuid(tenant_id), user_id=_as_uuid(user_id))
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


# PUBLIC_INTERFACE
@contextmanager
def unscoped() -> Iterator[None]:
    """
    Disable tenant filtering and injection for system operations such as login
    lookups by e-mail, global uniqueness checks and seeding.
    """
    token = _bypass.set(True)
    try:
        yield
    finally:
        _bypass.reset(token)


# PUBLIC_INTERFACE
def get_tenant_context() -> Optional[TenantContext]:
    """Return the context bound to the current task, or None."""
    return _current_context.get()


# PUBLIC_INTERFACE
def get_current_tenant_id(action: str = "access", model: str = "tenant-scoped data") -> UUID:
    """Return the current tenant id or raise TenantContextMissing."""
    ctx = _current_context.get()
    if ctx is None:
        raise TenantContextMissing(action, model)
    return ctx.tenant_id


# PUBLIC_INTERFACE
def get_current_user_id() -> Optional[UUID]:
    """Return the acting user id of the current context, if any."""
    ctx = _current_context.get()
    return ctx.user_id if ctx is not None else None


# PUBLIC_INTERFACE
def bind_session(session: Any, context: Optional[TenantContext]) -> None:
    """
    Bind a context to one session (sync Session or AsyncSession).

    A session-bound context takes precedence over the task-level one; passing
    None removes the binding.
    """
    info = session.info
    if context is None:
        info.pop(SESSION_INFO_KEY, None)
    else:
        info[SESSION_INFO_KEY] = context


def _resolve_context(session: Session) -> Optional[TenantContext]:
    ctx = session.info.get(SESSION_INFO_KEY)
    if ctx is not None:
        return ctx
    return _current_context.get()


def _tenant_tables() -> dict[str, str]:
    """Map table name -> model name for every tenant-scoped mapped class."""
    tables: dict[str, str] = {}
    for mapper in Base.registry.mappers:
        if issubclass(mapper.class_, TenantScopedMixin):
            tables[mapper.local_table.name] = mapper.class_.__name__
    return tables


def _referenced_tenant_models(statement: Any) -> Set[str]:
    scoped = _tenant_tables()
    found: Set[str] = set()
    for element in visitors.iterate(statement):
        table = None
        if isinstance(element, Table):
            table = element
        elif isinstance(element, ColumnClause) and isinstance(element.table, Table):
            table = element.table
        if table is not None and table.name in scoped:
            found.add(scoped[table.name])
    return found


@event.listens_for(Session, "do_orm_execute")
def _filter_by_tenant(execute_state: ORMExecuteState) -> None:
    if not (execute_state.is_select or execute_state.is_update or execute_state.is_delete):
        return
    # Lazy/refresh loads inherit criteria from the statement that loaded the parent.
    if execute_state.is_column_load or execute_state.is_relationship_load:
        return
    if _bypass.get():
        return

    ctx = _resolve_context(execute_state.session)

    if execute_state.is_select:
        if ctx is None:
            models = _referenced_tenant_models(execute_state.statement)
            if models:
                raise TenantContextMissing("query", sorted(models)[0])
            return
        tenant_id = ctx.tenant_id
        execute_state.statement = execute_state.statement.options(
            with_loader_criteria(
                TenantScopedMixin,
                lambda cls: cls.tenant_id == tenant_id,
                include_aliases=True,
            )
        )
        return

    mapper = execute_state.bind_mapper
    if mapper is None or not issubclass(mapper.class_, TenantScopedMixin):
        return
    action = "update" if execute_state.is_update else "delete"
    if ctx is None:
        raise TenantContextMissing(action, mapper.class_.__name__)
    execute_state.statement = execute_state.statement.where(
        mapper.class_.tenant_id == ctx.tenant_id
    )


@event.listens_for(Session, "before_flush")
def _enforce_tenant_on_flush(session: Session, flush_context: Any, instances: Any) -> None:
    if _bypass.get():
        return
    ctx = _resolve_context(session)

    for obj in session.new:
        if not isinstance(obj, TenantScopedMixin):
            continue
        if ctx is None:
            raise TenantContextMissing("create", type(obj).__name__)
        if obj.tenant_id is None:
            obj.tenant_id = ctx.tenant_id
        elif obj.tenant_id != ctx.tenant_id:
            raise TenantIsolationViolation(
                f"Cannot create {type(obj).__name__} for another tenant"
            )
        if isinstance(obj, AuditableMixin) and obj.created_by is None and ctx.user_id is not None:
            obj.created_by = ctx.user_id

    for obj in session.dirty:
        if not isinstance(obj, TenantScopedMixin):
            continue
        if not session.is_modified(obj, include_collections=False):
            continue
        if ctx is None:
            raise TenantContextMissing("update", type(obj).__name__)
        history = inspect(obj).attrs.tenant_id.history
        original = history.deleted[0] if history.deleted else obj.tenant_id
        if original != ctx.tenant_id or obj.tenant_id != ctx.tenant_id:
            logger.warning("Blocked cross-tenant update on %s", type(obj).__name__)
            raise TenantIsolationViolation(
                f"Cannot update {type(obj).__name__} of another tenant"
            )

    for obj in session.deleted:
        if not isinstance(obj, TenantScopedMixin):
            continue
        if ctx is None:
            raise TenantContextMissing("delete", type(obj).__name__)
        if obj.tenant_id != ctx.tenant_id:
            logger.warning("Blocked cross-tenant delete on %s", type(obj).__name__)
            raise TenantIsolationViolation(
                f"Cannot delete {type(obj).__name__} of another tenant"
            )
