from urllib.parse import parse_qs, urlparse

from sqlalchemy import select

from aurora.db.models import User, UserRole, UserSession, UserStatus
from aurora.db.tenancy import unscoped


def invite_token(message) -> str:
    line = next(l for l in message.text.splitlines() if l.startswith("Aceite o convite:"))
    return parse_qs(urlparse(line.split(":", 1)[1].strip()).query)["token"][0]


async def test_list_users_shows_only_own_municipality(client, gestor_headers, tecnico, make_tenant, make_user):
    outro = await make_tenant("Município Vizinho", "vizinho")
    await make_user(outro, "gestor@vizinho.gov.br")

    res = await client.get("/api/v1/users", headers=gestor_headers)
    assert res.status_code == 200
    emails = {u["email"] for u in res.json()}
    assert emails == {"gestor@aurora.gov.br", "tecnico@aurora.gov.br"}


async def test_tecnico_cannot_manage_users(client, tecnico_headers):
    res = await client.get("/api/v1/users", headers=tecnico_headers)
    assert res.status_code == 403
    assert res.json()["error"]["message"] == "This action requires GESTOR role"

    res = await client.post(
        "/api/v1/users/invite", json={"email": "x@aurora.gov.br", "role": "TECNICO"}, headers=tecnico_headers
    )
    assert res.status_code == 403


async def test_invite_creates_pending_user_and_sends_email(client, mailer, gestor_headers):
    res = await client.post(
        "/api/v1/users/invite",
        json={"email": "Nova.Tecnica@aurora.gov.br", "role": "TECNICO"},
        headers=gestor_headers,
    )
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["user"]["email"] == "nova.tecnica@aurora.gov.br"
    assert body["user"]["name"] == "nova.tecnica"
    assert body["user"]["status"] == "PENDING"
    assert body["user"]["role"] == "TECNICO"

    assert len(mailer.sent) == 1
    sent = mailer.sent[0]
    assert sent.subject == "Convite para AuroraSocial"
    assert "Gestora Ana" in sent.text
    assert "Município Aurora" in sent.text
    assert "Técnico" in sent.text


async def test_invitation_link_signs_the_user_in(client, mailer, gestor_headers):
    await client.post(
        "/api/v1/users/invite", json={"email": "convidado@aurora.gov.br", "role": "GESTOR"}, headers=gestor_headers
    )
    token = invite_token(mailer.sent[0])
    res = await client.post("/api/v1/auth/verify", json={"email": "convidado@aurora.gov.br", "token": token})
    assert res.status_code == 200

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {res.json()['access_token']}"})
    assert me.json()["status"] == "ACTIVE"
    assert me.json()["tenant_name"] == "Município Aurora"


async def test_invite_rejects_existing_email(client, mailer, gestor_headers, tecnico):
    res = await client.post(
        "/api/v1/users/invite", json={"email": "tecnico@aurora.gov.br", "role": "TECNICO"}, headers=gestor_headers
    )
    assert res.status_code == 409
    assert res.json()["error"]["message"] == "Já existe um usuário cadastrado com este email"
    assert mailer.sent == []


async def test_invite_rejects_email_used_in_other_municipality(client, gestor_headers, make_tenant, make_user):
    outro = await make_tenant("Município Vizinho", "vizinho")
    await make_user(outro, "compartilhado@gov.br")
    res = await client.post(
        "/api/v1/users/invite", json={"email": "compartilhado@gov.br", "role": "TECNICO"}, headers=gestor_headers
    )
    assert res.status_code == 409


async def test_invite_rolls_back_when_email_fails(client, mailer, session, gestor_headers):
    mailer.fail = True
    res = await client.post(
        "/api/v1/users/invite", json={"email": "falha@aurora.gov.br", "role": "TECNICO"}, headers=gestor_headers
    )
    assert res.status_code == 500
    assert res.json()["error"]["message"] == "Falha ao enviar email de convite. Por favor, tente novamente."

    with unscoped():
        user = (await session.execute(select(User).where(User.email == "falha@aurora.gov.br"))).scalar_one_or_none()
    assert user is None


async def test_invite_validates_role(client, gestor_headers):
    res = await client.post(
        "/api/v1/users/invite", json={"email": "x@aurora.gov.br", "role": "ADMIN"}, headers=gestor_headers
    )
    assert res.status_code == 422


async def test_gestor_cannot_deactivate_self(client, gestor, gestor_headers):
    res = await client.post(f"/api/v1/users/{gestor.id}/deactivate", headers=gestor_headers)
    assert res.status_code == 403
    assert res.json()["error"]["message"] == "Você não pode desativar sua própria conta"


async def test_deactivate_ends_sessions_and_blocks_access(client, session, gestor_headers, tecnico, tecnico_headers):
    res = await client.post(f"/api/v1/users/{tecnico.id}/deactivate", headers=gestor_headers)
    assert res.status_code == 200
    assert res.json()["status"] == "INACTIVE"

    remaining = (await session.scalars(select(UserSession).where(UserSession.user_id == tecnico.id))).all()
    assert remaining == []

    me = await client.get("/api/v1/auth/me", headers=tecnico_headers)
    assert me.status_code == 401


async def test_reactivate_restores_access(client, mailer, gestor_headers, tecnico):
    await client.post(f"/api/v1/users/{tecnico.id}/deactivate", headers=gestor_headers)
    res = await client.post(f"/api/v1/users/{tecnico.id}/reactivate", headers=gestor_headers)
    assert res.status_code == 200
    assert res.json()["status"] == "ACTIVE"

    await client.post("/api/v1/auth/magic-link", json={"email": "tecnico@aurora.gov.br"})
    assert len(mailer.sent) == 1


async def test_users_of_other_municipality_are_not_found(client, gestor_headers, make_tenant, make_user):
    outro = await make_tenant("Município Vizinho", "vizinho")
    estranho = await make_user(outro, "tecnico@vizinho.gov.br", role=UserRole.TECNICO)
    res = await client.post(f"/api/v1/users/{estranho.id}/deactivate", headers=gestor_headers)
    assert res.status_code == 404
    assert res.json()["error"]["message"] == "Usuário não encontrado"


async def test_pending_users_are_listed(client, gestor_headers, make_user, tenant):
    await make_user(tenant, "pendente@aurora.gov.br", status=UserStatus.PENDING)
    res = await client.get("/api/v1/users", headers=gestor_headers)
    statuses = {u["email"]: u["status"] for u in res.json()}
    assert statuses["pendente@aurora.gov.br"] == "PENDING"
