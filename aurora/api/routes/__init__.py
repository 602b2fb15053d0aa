"""
API route modules.

This package contains subrouters for:
- Auth: magic link, verify, logout and current user
- Users: team listing, invitation, deactivation (GESTOR)
- Citizens / Families: registration, profile, atendimentos, family members
- Attachments: upload, delete, signed download
- Reports: dashboard metrics and RMA with PDF/Excel export (GESTOR)
- Import: CSV template and citizen import (GESTOR)

Routers are included from aurora.api.main (under the /api/v1 prefix).
"""
