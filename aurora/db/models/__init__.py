"""
ORM models for AuroraSocial: municipalities, staff and their sessions,
citizens, families, atendimentos and attachments.

Importing this package registers every mapped class with the Base metadata
(for Alembic and create_all) and installs the tenant isolation hooks.
"""

from aurora.db import tenancy  # noqa: F401

from .tenant import Tenant  # noqa: F401
from .security import (  # noqa: F401
    User,
    UserSession,
    VerificationToken,
)
from .citizens import (  # noqa: F401
    Individuo,
    Familia,
    ComposicaoFamiliar,
)
from .atendimentos import Atendimento  # noqa: F401
from .attachments import Anexo  # noqa: F401
from .enums import (  # noqa: F401
    Parentesco,
    Sexo,
    TipoDemanda,
    UserRole,
    UserStatus,
)
