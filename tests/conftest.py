# tests/conftest.py
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List

# Settings are read at import time; configure before importing the app.
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("AUTO_SEED", "false")
os.environ.setdefault("POSTGRES_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("APP_BASE_URL", "http://localhost:3000")
os.environ.pop("SMTP_HOST", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from aurora.api.main import app
from aurora.core.security import create_access_token
from aurora.db.base import Base
from aurora.db.models import Tenant, User, UserRole, UserSession, UserStatus
from aurora.db.session import get_async_session
from aurora.db.tenancy import unscoped
from aurora.services.mailer import MailDeliveryError, Mailer, OutgoingEmail, get_mailer
from aurora.services.reporting import dashboard_cache
from aurora.services.storage import LocalBlobStorage, get_blob_storage


class RecordingMailer(Mailer):
    """Keeps sent messages in memory; set fail=True to simulate SMTP errors."""

    def __init__(self) -> None:
        self.sent: List[OutgoingEmail] = []
        self.fail = False

    async def send(self, message: OutgoingEmail) -> None:
        if self.fail:
            raise MailDeliveryError("smtp unavailable")
        self.sent.append(message)


@pytest_asyncio.fixture(scope="function")
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as s:
        yield s


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def storage(tmp_path) -> LocalBlobStorage:
    return LocalBlobStorage(tmp_path / "blobs")


@pytest_asyncio.fixture
async def client(session_maker, mailer, storage) -> AsyncGenerator[AsyncClient, None]:
    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as s:
            yield s

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_blob_storage] = lambda: storage
    await dashboard_cache.clear()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_tenant(session_maker):
    async def _make(name: str = "Município Teste", slug: str | None = None) -> Tenant:
        async with session_maker() as s:
            tenant = Tenant(name=name, slug=slug or name.lower().replace(" ", "-"), state="MG")
            s.add(tenant)
            await s.commit()
            return tenant

    return _make


@pytest.fixture
def make_user(session_maker):
    async def _make(
        tenant: Tenant,
        email: str,
        role: UserRole = UserRole.GESTOR,
        status: UserStatus = UserStatus.ACTIVE,
        name: str = "Usuário Teste",
    ) -> User:
        async with session_maker() as s:
            with unscoped():
                user = User(
                    tenant_id=tenant.id,
                    email=email.lower(),
                    name=name,
                    role=role.value,
                    status=status.value,
                )
                s.add(user)
                await s.commit()
            return user

    return _make


@pytest.fixture
def auth_headers(session_maker):
    """Open a login session for the user and return bearer headers."""

    async def _headers(user: User) -> dict:
        expires_at = datetime.now(tz=timezone.utc) + timedelta(days=1)
        async with session_maker() as s:
            login = UserSession(user_id=user.id, expires_at=expires_at)
            s.add(login)
            await s.commit()
        token = create_access_token(
            subject=str(user.id),
            tenant_id=str(user.tenant_id),
            role=user.role,
            session_id=str(login.id),
            expires_at=expires_at,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def tenant(make_tenant) -> Tenant:
    return await make_tenant("Município Aurora", "aurora")


@pytest_asyncio.fixture
async def gestor(make_user, tenant) -> User:
    return await make_user(tenant, "gestor@aurora.gov.br", UserRole.GESTOR, name="Gestora Ana")


@pytest_asyncio.fixture
async def tecnico(make_user, tenant) -> User:
    return await make_user(tenant, "tecnico@aurora.gov.br", UserRole.TECNICO, name="Técnico Bruno")


@pytest_asyncio.fixture
async def gestor_headers(auth_headers, gestor) -> dict:
    return await auth_headers(gestor)


@pytest_asyncio.fixture
async def tecnico_headers(auth_headers, tecnico) -> dict:
    return await auth_headers(tecnico)


def citizen_payload(**overrides) -> dict:
    payload = {
        "nome_completo": "Maria Aparecida dos Santos",
        "cpf": "123.456.789-09",
        "data_nascimento": "1980-03-12",
        "sexo": "FEMININO",
        "nome_mae": "Joana dos Santos",
        "nis": "123.45678.90-1",
    }
    payload.update(overrides)
    return payload



@pytest.fixture
def citizen_data():
    """Factory for citizen creation payloads."""
    return citizen_payload


@pytest.fixture
def create_citizen(client, citizen_data):
    async def _create(headers: dict, **overrides) -> dict:
        res = await client.post("/api/v1/citizens", json=citizen_data(**overrides), headers=headers)
        assert res.status_code == 201, res.text
        return res.json()

    return _create
