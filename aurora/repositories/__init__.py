"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area. Tenant
filtering is applied by the session hooks in aurora.db.tenancy, so queries
here never mention tenant_id; the session must carry a tenant context
(see aurora.core.deps.get_tenant_session) or run inside unscoped().
"""
