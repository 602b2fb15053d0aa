from datetime import datetime, timezone
from urllib.parse import quote

import pytest

from aurora.services.reporting import month_bounds
from aurora.services.rma_export import PDF_MEDIA_TYPE, XLSX_MEDIA_TYPE


def atendimento(tipo="BENEFICIO_EVENTUAL", data=None) -> dict:
    payload = {
        "tipo_demanda": tipo,
        "encaminhamento": "Encaminhamento ao CRAS de referência",
        "parecer_social": "Situação de vulnerabilidade social identificada",
    }
    if data is not None:
        payload["data"] = data
    return payload


@pytest.fixture
def register(client, gestor_headers):
    async def _register(individuo_id, **kwargs):
        res = await client.post(
            f"/api/v1/citizens/{individuo_id}/atendimentos", json=atendimento(**kwargs), headers=gestor_headers
        )
        assert res.status_code == 201, res.text
        return res.json()

    return _register


@pytest.fixture
async def household(client, create_citizen, gestor_headers):
    """Maria heads a family with her son Pedro; José lives alone."""
    maria = await create_citizen(gestor_headers, create_as_responsavel=True, endereco="Rua das Flores, 120")
    pedro = await create_citizen(
        gestor_headers, nome_completo="Pedro dos Santos", cpf="222.333.444-55", data_nascimento="2010-06-01", nis=None
    )
    jose = await create_citizen(gestor_headers, nome_completo="José da Silva", cpf="111.222.333-44", nis=None)
    res = await client.post(
        f"/api/v1/families/{maria['familia']['id']}/members",
        json={"individuo_id": pedro["individuo"]["id"], "parentesco": "FILHO"},
        headers=gestor_headers,
    )
    assert res.status_code == 201
    return maria["individuo"]["id"], pedro["individuo"]["id"], jose["individuo"]["id"]


def test_month_bounds():
    assert month_bounds(2024, 2) == (
        datetime(2024, 2, 1, tzinfo=timezone.utc),
        datetime(2024, 3, 1, tzinfo=timezone.utc),
    )
    assert month_bounds(2024, 12)[1] == datetime(2025, 1, 1, tzinfo=timezone.utc)


async def test_reports_require_gestor(client, tecnico_headers):
    res = await client.get("/api/v1/reports/dashboard", headers=tecnico_headers)
    assert res.status_code == 403
    res = await client.get("/api/v1/reports/rma", params={"mes": 1, "ano": 2024}, headers=tecnico_headers)
    assert res.status_code == 403


async def test_dashboard_metrics(client, gestor_headers, household, register):
    maria, pedro, jose = household
    await register(maria)
    await register(maria, tipo="CADASTRO_UNICO")
    await register(jose)
    await register(pedro, data="2000-01-15T12:00:00Z")

    res = await client.get("/api/v1/reports/dashboard", headers=gestor_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["total_atendimentos"] == 4
    assert body["total_familias"] == 1
    assert body["total_individuos"] == 3
    current = datetime.now(tz=timezone.utc).strftime("%Y-%m")
    assert body["atendimentos_por_mes"] == [{"mes": current, "count": 3}]
    assert body["atendimentos_por_tipo_demanda"] == [
        {"tipo_demanda": "BENEFICIO_EVENTUAL", "count": 3},
        {"tipo_demanda": "CADASTRO_UNICO", "count": 1},
    ]
    assert body["ultima_atualizacao"]


async def test_dashboard_is_cached_until_refresh(client, gestor_headers, household, register):
    maria, _, _ = household
    await register(maria)
    first = await client.get("/api/v1/reports/dashboard", headers=gestor_headers)
    assert first.json()["total_atendimentos"] == 1

    await register(maria)
    cached = await client.get("/api/v1/reports/dashboard", headers=gestor_headers)
    assert cached.json()["total_atendimentos"] == 1
    assert cached.json()["ultima_atualizacao"] == first.json()["ultima_atualizacao"]

    fresh = await client.get("/api/v1/reports/dashboard", params={"refresh": "true"}, headers=gestor_headers)
    assert fresh.json()["total_atendimentos"] == 2


async def test_dashboard_is_per_municipality(client, household, register, make_tenant, make_user, auth_headers):
    maria, _, _ = household
    await register(maria)
    outro = await make_tenant("Município Vizinho", "vizinho")
    headers = await auth_headers(await make_user(outro, "gestor@vizinho.gov.br"))
    res = await client.get("/api/v1/reports/dashboard", headers=headers)
    body = res.json()
    assert body["total_atendimentos"] == 0
    assert body["total_individuos"] == 0
    assert body["atendimentos_por_mes"] == []


async def test_rma_counts_the_month(client, gestor_headers, household, register):
    maria, pedro, jose = household
    await register(maria, data="2024-03-05T09:00:00Z")
    await register(maria, data="2024-03-20T14:30:00Z")
    await register(pedro, tipo="CADASTRO_UNICO", data="2024-03-05T10:00:00Z")
    await register(jose, data="2024-03-31T23:00:00Z")
    # Outside March 2024
    await register(jose, data="2024-04-01T00:00:00Z")
    await register(maria, data="2024-02-29T23:59:00Z")

    res = await client.get("/api/v1/reports/rma", params={"mes": 3, "ano": 2024}, headers=gestor_headers)
    assert res.status_code == 200, res.text
    report = res.json()
    assert report["municipio"] == "Município Aurora"
    assert report["total_atendimentos"] == 4
    assert report["atendimentos_por_tipo_demanda"] == [
        {"tipo_demanda": "BENEFICIO_EVENTUAL", "count": 3},
        {"tipo_demanda": "CADASTRO_UNICO", "count": 1},
    ]
    assert report["atendimentos_por_dia"] == [
        {"dia": 5, "count": 2},
        {"dia": 20, "count": 1},
        {"dia": 31, "count": 1},
    ]
    assert report["total_individuos_atendidos"] == 3
    # Maria and Pedro share one family; José has none.
    assert report["total_familias_atendidas"] == 1


async def test_rma_of_empty_month(client, gestor_headers):
    res = await client.get("/api/v1/reports/rma", params={"mes": 1, "ano": 2020}, headers=gestor_headers)
    report = res.json()
    assert report["total_atendimentos"] == 0
    assert report["atendimentos_por_dia"] == []
    assert report["total_familias_atendidas"] == 0


async def test_rma_rejects_future_month(client, gestor_headers):
    now = datetime.now(tz=timezone.utc)
    mes, ano = (1, now.year + 1) if now.month == 12 else (now.month + 1, now.year)
    res = await client.get("/api/v1/reports/rma", params={"mes": mes, "ano": ano}, headers=gestor_headers)
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Não é possível gerar relatório para mês/ano futuro"


async def test_rma_validates_month(client, gestor_headers):
    res = await client.get("/api/v1/reports/rma", params={"mes": 13, "ano": 2024}, headers=gestor_headers)
    assert res.status_code == 422


async def test_rma_export_xlsx(client, gestor_headers, household, register):
    maria, _, _ = household
    await register(maria, data="2024-03-05T09:00:00Z")
    res = await client.get(
        "/api/v1/reports/rma/export", params={"mes": 3, "ano": 2024, "format": "xlsx"}, headers=gestor_headers
    )
    assert res.status_code == 200
    assert res.headers["content-type"] == XLSX_MEDIA_TYPE
    assert quote("RMA_Março_2024.xlsx") in res.headers["content-disposition"]
    assert res.content[:2] == b"PK"


async def test_rma_export_pdf_is_default(client, gestor_headers):
    res = await client.get("/api/v1/reports/rma/export", params={"mes": 10, "ano": 2025}, headers=gestor_headers)
    assert res.status_code == 200
    assert res.headers["content-type"] == PDF_MEDIA_TYPE
    assert quote("RMA_Outubro_2025.pdf") in res.headers["content-disposition"]
    assert res.content.startswith(b"%PDF")


async def test_rma_export_rejects_unknown_format(client, gestor_headers):
    res = await client.get(
        "/api/v1/reports/rma/export", params={"mes": 3, "ano": 2024, "format": "csv"}, headers=gestor_headers
    )
    assert res.status_code == 422
