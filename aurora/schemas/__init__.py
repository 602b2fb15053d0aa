"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by domain module (auth, users, citizens, atendimentos,
attachments, reports, imports) plus common reusable models such as the
pagination block and the standard error envelope.
"""

from .common import MessageResponse  # noqa: F401
