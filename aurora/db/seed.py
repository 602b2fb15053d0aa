"""
Database seeding for a demo municipality.

Seeds:
- Tenant "Município Demonstração" (slug demo)
- An active GESTOR user (SEED_GESTOR_EMAIL, default gestor@demo.aurorasocial.com)
- A few citizens, one family and a first atendimento

Usage:
  python -m aurora.db.run_migrations upgrade head
  python -m aurora.db.seed
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aurora.db.base import utcnow
from aurora.db.models import (
    Atendimento,
    ComposicaoFamiliar,
    Familia,
    Individuo,
    Parentesco,
    Sexo,
    Tenant,
    TipoDemanda,
    User,
    UserRole,
    UserStatus,
)
from aurora.db.session import get_session_maker, tenant_context
from aurora.db.tenancy import unscoped

logger = logging.getLogger(__name__)

DEMO_TENANT_SLUG = "demo"


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the database with a demo municipality. Safe to run repeatedly: an
    existing demo tenant is left untouched.
    """
    async with get_session_maker()() as session:
        tenant_id = await _ensure_demo_tenant(session)
        if tenant_id is None:
            logger.info("Demo tenant already present; skipping seed.")
            return
        gestor_id = await _seed_gestor(session, tenant_id)
        async with tenant_context(session, tenant_id, gestor_id):
            await _seed_citizens(session, gestor_id)
        await session.commit()


async def _ensure_demo_tenant(session: AsyncSession) -> UUID | None:
    """Create the demo tenant; returns None when it already exists."""
    res = await session.execute(select(Tenant).where(Tenant.slug == DEMO_TENANT_SLUG))
    if res.scalar_one_or_none() is not None:
        return None
    tenant = Tenant(name="Município Demonstração", slug=DEMO_TENANT_SLUG, state="MG")
    session.add(tenant)
    await session.flush()
    return tenant.id


async def _seed_gestor(session: AsyncSession, tenant_id: UUID) -> UUID:
    email = os.getenv("SEED_GESTOR_EMAIL", "gestor@demo.aurorasocial.com").lower()
    with unscoped():
        res = await session.execute(select(User).where(User.email == email))
        existing = res.scalar_one_or_none()
    if existing is not None:
        return existing.id
    user = User(
        tenant_id=tenant_id,
        email=email,
        name="Gestor Demonstração",
        role=UserRole.GESTOR.value,
        status=UserStatus.ACTIVE.value,
        email_verified_at=utcnow(),
    )
    async with tenant_context(session, tenant_id):
        session.add(user)
        await session.flush()
    return user.id


async def _seed_citizens(session: AsyncSession, gestor_id: UUID) -> None:
    maria = Individuo(
        nome_completo="Maria Aparecida dos Santos",
        cpf="12345678909",
        data_nascimento=date(1980, 3, 12),
        sexo=Sexo.FEMININO.value,
        nome_mae="Joana dos Santos",
        nis="12345678901",
    )
    joao = Individuo(
        nome_completo="João Pedro dos Santos",
        cpf="98765432100",
        data_nascimento=date(2010, 7, 1),
        sexo=Sexo.MASCULINO.value,
        nome_mae="Maria Aparecida dos Santos",
    )
    session.add_all([maria, joao])
    await session.flush()

    familia = Familia(
        responsavel_familiar_id=maria.id,
        endereco="Rua das Flores, 123, Centro",
        renda_familiar_total=Decimal("1200.00"),
    )
    session.add(familia)
    await session.flush()
    session.add_all(
        [
            ComposicaoFamiliar(familia_id=familia.id, individuo_id=maria.id, parentesco=Parentesco.RESPONSAVEL.value),
            ComposicaoFamiliar(familia_id=familia.id, individuo_id=joao.id, parentesco=Parentesco.FILHO.value),
            Atendimento(
                individuo_id=maria.id,
                usuario_id=gestor_id,
                tipo_demanda=TipoDemanda.CADASTRO_UNICO.value,
                encaminhamento="Atualização cadastral no CadÚnico.",
                parecer_social="Família em acompanhamento; documentação regularizada.",
            ),
        ]
    )
    await session.flush()


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
