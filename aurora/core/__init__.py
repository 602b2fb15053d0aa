"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with request context
- Domain errors and token helpers
- FastAPI dependencies (authentication, roles, tenant-bound DB session)
"""
