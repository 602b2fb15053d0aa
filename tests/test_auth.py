from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

from aurora.core.security import create_access_token
from aurora.db.models import UserRole, UserSession, UserStatus
from aurora.services.auth import INVALID_LINK, MAGIC_LINK_SENT, AuthService


def token_from_email(message) -> str:
    line = next(l for l in message.text.splitlines() if l.startswith("Acesse:"))
    url = line.split("Acesse:", 1)[1].strip()
    return parse_qs(urlparse(url).query)["token"][0]


async def test_magic_link_is_sent_to_registered_user(client, mailer, gestor):
    res = await client.post("/api/v1/auth/magic-link", json={"email": "gestor@aurora.gov.br"})
    assert res.status_code == 200
    assert res.json()["message"] == MAGIC_LINK_SENT
    assert len(mailer.sent) == 1
    sent = mailer.sent[0]
    assert sent.to == "gestor@aurora.gov.br"
    assert "http://localhost:3000/auth/verify?" in sent.text
    assert token_from_email(sent)


async def test_magic_link_answer_does_not_reveal_unknown_email(client, mailer, gestor):
    res = await client.post("/api/v1/auth/magic-link", json={"email": "ninguem@aurora.gov.br"})
    assert res.status_code == 200
    assert res.json()["message"] == MAGIC_LINK_SENT
    assert mailer.sent == []


async def test_magic_link_not_sent_to_inactive_user(client, mailer, make_user, tenant):
    await make_user(tenant, "inativo@aurora.gov.br", status=UserStatus.INACTIVE)
    res = await client.post("/api/v1/auth/magic-link", json={"email": "inativo@aurora.gov.br"})
    assert res.status_code == 200
    assert mailer.sent == []


async def test_magic_link_rejects_invalid_email(client):
    res = await client.post("/api/v1/auth/magic-link", json={"email": "não-é-email"})
    assert res.status_code == 422
    assert res.json()["error"]["type"] == "validation_error"


async def test_magic_link_mail_failure_keeps_generic_answer(client, mailer, gestor):
    mailer.fail = True
    res = await client.post("/api/v1/auth/magic-link", json={"email": "gestor@aurora.gov.br"})
    assert res.status_code == 200
    assert res.json()["message"] == MAGIC_LINK_SENT


async def test_verify_activates_pending_user(client, mailer, make_user, tenant):
    await make_user(tenant, "novo@aurora.gov.br", role=UserRole.TECNICO, status=UserStatus.PENDING)
    await client.post("/api/v1/auth/magic-link", json={"email": "novo@aurora.gov.br"})
    token = token_from_email(mailer.sent[0])

    res = await client.post("/api/v1/auth/verify", json={"email": "novo@aurora.gov.br", "token": token})
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"]

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    profile = me.json()
    assert profile["email"] == "novo@aurora.gov.br"
    assert profile["status"] == "ACTIVE"
    assert profile["role"] == "TECNICO"
    assert profile["email_verified_at"] is not None


async def test_verify_token_is_single_use(client, mailer, gestor):
    await client.post("/api/v1/auth/magic-link", json={"email": "gestor@aurora.gov.br"})
    token = token_from_email(mailer.sent[0])
    payload = {"email": "gestor@aurora.gov.br", "token": token}

    first = await client.post("/api/v1/auth/verify", json=payload)
    assert first.status_code == 200
    second = await client.post("/api/v1/auth/verify", json=payload)
    assert second.status_code == 401
    assert second.json()["error"]["message"] == INVALID_LINK


async def test_verify_rejects_token_for_other_email(client, mailer, gestor, tecnico):
    await client.post("/api/v1/auth/magic-link", json={"email": "gestor@aurora.gov.br"})
    token = token_from_email(mailer.sent[0])
    res = await client.post("/api/v1/auth/verify", json={"email": "tecnico@aurora.gov.br", "token": token})
    assert res.status_code == 401


async def test_verify_rejects_expired_token(client, session, gestor):
    token = await AuthService(session).issue_verification_token("gestor@aurora.gov.br", timedelta(minutes=-1))
    await session.commit()
    res = await client.post("/api/v1/auth/verify", json={"email": "gestor@aurora.gov.br", "token": token})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == INVALID_LINK


async def test_verify_refuses_deactivated_user(client, session, make_user, tenant):
    await make_user(tenant, "inativo@aurora.gov.br", status=UserStatus.INACTIVE)
    token = await AuthService(session).issue_verification_token("inativo@aurora.gov.br", timedelta(hours=1))
    await session.commit()
    res = await client.post("/api/v1/auth/verify", json={"email": "inativo@aurora.gov.br", "token": token})
    assert res.status_code == 403
    assert "desativada" in res.json()["error"]["message"]


async def test_me_returns_user_and_municipality(client, gestor_headers):
    res = await client.get("/api/v1/auth/me", headers=gestor_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["email"] == "gestor@aurora.gov.br"
    assert body["name"] == "Gestora Ana"
    assert body["role"] == "GESTOR"
    assert body["tenant_name"] == "Município Aurora"


async def test_requests_without_token_are_rejected(client, gestor):
    res = await client.get("/api/v1/auth/me")
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Authentication required"
    assert res.headers["WWW-Authenticate"] == "Bearer"


async def test_garbage_token_is_rejected(client, gestor):
    res = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


async def test_logout_revokes_the_session(client, gestor_headers):
    res = await client.post("/api/v1/auth/logout", headers=gestor_headers)
    assert res.status_code == 200
    again = await client.get("/api/v1/auth/me", headers=gestor_headers)
    assert again.status_code == 401
    assert again.json()["error"]["message"] == "Session expired or revoked"


async def test_error_envelope_carries_correlation_id(client):
    res = await client.get("/api/v1/auth/me", headers={"X-Correlation-ID": "abc-123"})
    assert res.headers["X-Correlation-ID"] == "abc-123"
    body = res.json()
    assert body["correlation_id"] == "abc-123"
    assert body["path"] == "/api/v1/auth/me"
    assert body["status"] == 401


async def test_health(client):
    res = await client.get("/api/v1/health")
    assert res.status_code == 200


async def test_expired_login_session_is_rejected(client, session_maker, gestor):
    now = datetime.now(tz=timezone.utc)
    async with session_maker() as s:
        login = UserSession(user_id=gestor.id, expires_at=now - timedelta(minutes=1))
        s.add(login)
        await s.commit()
    token = create_access_token(
        subject=str(gestor.id),
        tenant_id=str(gestor.tenant_id),
        role=gestor.role,
        session_id=str(login.id),
        expires_at=now + timedelta(hours=1),
    )

    res = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Session expired or revoked"

    async with session_maker() as s:
        assert await s.get(UserSession, login.id) is None


async def test_new_magic_link_replaces_the_previous_one(client, mailer, gestor):
    await client.post("/api/v1/auth/magic-link", json={"email": "gestor@aurora.gov.br"})
    await client.post("/api/v1/auth/magic-link", json={"email": "gestor@aurora.gov.br"})
    old, new = (token_from_email(m) for m in mailer.sent)

    res = await client.post("/api/v1/auth/verify", json={"email": "gestor@aurora.gov.br", "token": old})
    assert res.status_code == 401
    res = await client.post("/api/v1/auth/verify", json={"email": "gestor@aurora.gov.br", "token": new})
    assert res.status_code == 200


async def test_inactive_user_with_live_session_is_forbidden(client, make_user, tenant, auth_headers):
    user = await make_user(tenant, "inativo@aurora.gov.br", status=UserStatus.INACTIVE)
    res = await client.get("/api/v1/auth/me", headers=await auth_headers(user))
    assert res.status_code == 403
    assert res.json()["error"]["message"] == "Inactive user"
