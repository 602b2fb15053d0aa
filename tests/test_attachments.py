from types import SimpleNamespace

import pytest

from aurora.api.main import app
from aurora.core.security import create_download_token
from aurora.services import attachments as attachments_module
from aurora.services.attachments import sanitize_file_name
from aurora.services.storage import LocalBlobStorage, StorageError, get_blob_storage

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
async def maria(create_citizen, tecnico_headers):
    return await create_citizen(tecnico_headers, create_as_responsavel=True, endereco="Rua das Flores, 120")


async def upload(client, headers, files, **owner):
    data = {k: str(v) for k, v in owner.items()}
    return await client.post("/api/v1/attachments", files=files, data=data, headers=headers)


async def test_upload_for_citizen(client, maria, storage, tecnico, tecnico_headers):
    cid = maria["individuo"]["id"]
    res = await upload(client, tecnico_headers, {"file": ("rg frente.pdf", PDF_BYTES, "application/pdf")}, individuo_id=cid)
    assert res.status_code == 201, res.text
    anexo = res.json()
    assert anexo["file_name"] == "rg frente.pdf"
    assert anexo["file_size"] == len(PDF_BYTES)
    assert anexo["mime_type"] == "application/pdf"
    assert anexo["individuo_id"] == cid
    assert anexo["familia_id"] is None
    assert anexo["uploaded_by"] == str(tecnico.id)

    stored = list(storage.root.rglob("*"))
    files = [p for p in stored if p.is_file()]
    assert len(files) == 1
    assert files[0].read_bytes() == PDF_BYTES
    assert files[0].name.endswith("-rg_frente.pdf")
    assert files[0].parent.name == cid
    assert files[0].parent.parent.name == str(tecnico.tenant_id)

    profile = await client.get(f"/api/v1/citizens/{cid}", headers=tecnico_headers)
    assert [a["id"] for a in profile.json()["anexos"]] == [anexo["id"]]


async def test_upload_for_family(client, maria, tecnico_headers):
    fid = maria["familia"]["id"]
    res = await upload(client, tecnico_headers, {"file": ("comprovante.png", PNG_BYTES, "image/png")}, familia_id=fid)
    assert res.status_code == 201
    assert res.json()["familia_id"] == fid


async def test_upload_requires_exactly_one_owner(client, maria, tecnico_headers):
    files = {"file": ("rg.pdf", PDF_BYTES, "application/pdf")}
    res = await upload(client, tecnico_headers, files)
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "É necessário especificar familiaId ou individuoId"

    res = await upload(
        client, tecnico_headers, files, familia_id=maria["familia"]["id"], individuo_id=maria["individuo"]["id"]
    )
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Não é possível anexar a família e indivíduo simultaneamente"


@pytest.mark.parametrize(
    "file",
    [
        ("script.exe", b"MZ", "application/octet-stream"),
        ("rg.pdf", b"texto", "text/plain"),
        ("documento.docx", b"PK", "application/pdf"),
    ],
)
async def test_upload_rejects_disallowed_types(client, maria, tecnico_headers, file):
    res = await upload(client, tecnico_headers, {"file": file}, individuo_id=maria["individuo"]["id"])
    assert res.status_code == 400
    assert res.json()["error"]["message"].startswith("Tipo de arquivo não permitido")


async def test_upload_rejects_empty_and_oversized_files(client, maria, tecnico_headers, storage, monkeypatch):
    cid = maria["individuo"]["id"]
    res = await upload(client, tecnico_headers, {"file": ("rg.pdf", b"", "application/pdf")}, individuo_id=cid)
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Arquivo vazio"

    monkeypatch.setenv("MAX_UPLOAD_BYTES", "16")
    res = await upload(client, tecnico_headers, {"file": ("rg.pdf", PDF_BYTES, "application/pdf")}, individuo_id=cid)
    assert res.status_code == 400
    assert res.json()["error"]["message"].startswith("Arquivo muito grande")
    assert not storage.root.exists() or not any(p.is_file() for p in storage.root.rglob("*"))


async def test_upload_for_unknown_owner_is_404(client, tecnico_headers):
    res = await upload(
        client,
        tecnico_headers,
        {"file": ("rg.pdf", PDF_BYTES, "application/pdf")},
        familia_id="00000000-0000-0000-0000-000000000000",
    )
    assert res.status_code == 404
    assert res.json()["error"]["message"] == "Família não encontrada"


async def test_signed_url_allows_download_without_bearer(client, maria, tecnico_headers):
    up = await upload(
        client, tecnico_headers, {"file": ("rg.pdf", PDF_BYTES, "application/pdf")}, individuo_id=maria["individuo"]["id"]
    )
    anexo_id = up.json()["id"]

    res = await client.get(f"/api/v1/attachments/{anexo_id}/signed-url", headers=tecnico_headers)
    assert res.status_code == 200
    signed = res.json()
    assert signed["file_name"] == "rg.pdf"
    assert signed["mime_type"] == "application/pdf"
    assert signed["url"].startswith(f"/api/v1/attachments/{anexo_id}/download?token=")

    download = await client.get(signed["url"])
    assert download.status_code == 200
    assert download.content == PDF_BYTES
    assert download.headers["content-type"] == "application/pdf"
    assert "rg.pdf" in download.headers["content-disposition"]


async def test_download_rejects_bad_tokens(client, maria, tecnico, tecnico_headers):
    up = await upload(
        client, tecnico_headers, {"file": ("rg.pdf", PDF_BYTES, "application/pdf")}, individuo_id=maria["individuo"]["id"]
    )
    anexo_id = up.json()["id"]

    res = await client.get(f"/api/v1/attachments/{anexo_id}/download", params={"token": "invalido"})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Link de download inválido ou expirado"

    other = create_download_token("00000000-0000-0000-0000-000000000000", str(tecnico.tenant_id))
    res = await client.get(f"/api/v1/attachments/{anexo_id}/download", params={"token": other})
    assert res.status_code == 401

    bearer = tecnico_headers["Authorization"].split(" ", 1)[1]
    res = await client.get(f"/api/v1/attachments/{anexo_id}/download", params={"token": bearer})
    assert res.status_code == 401


async def test_download_token_of_other_tenant_finds_nothing(client, maria, tecnico_headers, make_tenant):
    up = await upload(
        client, tecnico_headers, {"file": ("rg.pdf", PDF_BYTES, "application/pdf")}, individuo_id=maria["individuo"]["id"]
    )
    anexo_id = up.json()["id"]
    outro = await make_tenant("Município Vizinho", "vizinho")
    forged = create_download_token(anexo_id, str(outro.id))
    res = await client.get(f"/api/v1/attachments/{anexo_id}/download", params={"token": forged})
    assert res.status_code == 404


async def test_delete_removes_blob_and_metadata(client, maria, storage, tecnico_headers):
    up = await upload(
        client, tecnico_headers, {"file": ("rg.pdf", PDF_BYTES, "application/pdf")}, individuo_id=maria["individuo"]["id"]
    )
    anexo_id = up.json()["id"]

    res = await client.delete(f"/api/v1/attachments/{anexo_id}", headers=tecnico_headers)
    assert res.status_code == 200
    assert not any(p.is_file() for p in storage.root.rglob("*"))

    res = await client.get(f"/api/v1/attachments/{anexo_id}/signed-url", headers=tecnico_headers)
    assert res.status_code == 404
    assert res.json()["error"]["message"] == "Anexo não encontrado ou você não tem permissão para acessá-lo"


async def test_attachments_of_other_municipality_are_hidden(client, maria, tecnico_headers, make_tenant, make_user, auth_headers):
    up = await upload(
        client, tecnico_headers, {"file": ("rg.pdf", PDF_BYTES, "application/pdf")}, individuo_id=maria["individuo"]["id"]
    )
    anexo_id = up.json()["id"]
    outro = await make_tenant("Município Vizinho", "vizinho")
    headers = await auth_headers(await make_user(outro, "gestor@vizinho.gov.br"))

    assert (await client.get(f"/api/v1/attachments/{anexo_id}/signed-url", headers=headers)).status_code == 404
    assert (await client.delete(f"/api/v1/attachments/{anexo_id}", headers=headers)).status_code == 404


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("rg frente.pdf", "rg_frente.pdf"),
        ("../../etc/passwd.png", "passwd.png"),
        ("C:\\Users\\ana\\comprovante.jpg", "comprovante.jpg"),
        ("certidão de nascimento.pdf", "certid_o_de_nascimento.pdf"),
        ("...", "arquivo"),
    ],
)
def test_sanitize_file_name(raw, expected):
    assert sanitize_file_name(raw) == expected


class FailingStorage(LocalBlobStorage):
    async def put(self, key: str, data: bytes, content_type: str) -> None:
        raise StorageError("disk full")


async def test_storage_failure_returns_500_and_saves_nothing(client, maria, tmp_path, tecnico_headers):
    app.dependency_overrides[get_blob_storage] = lambda: FailingStorage(tmp_path / "failing")
    cid = maria["individuo"]["id"]
    res = await upload(client, tecnico_headers, {"file": ("rg.pdf", PDF_BYTES, "application/pdf")}, individuo_id=cid)
    assert res.status_code == 500
    assert res.json()["error"]["message"] == "Falha ao fazer upload do arquivo. Tente novamente."

    profile = await client.get(f"/api/v1/citizens/{cid}", headers=tecnico_headers)
    assert profile.json()["anexos"] == []


async def test_same_name_uploads_in_same_millisecond_keep_both_files(
    client, maria, storage, tecnico_headers, monkeypatch
):
    monkeypatch.setattr(attachments_module, "time", SimpleNamespace(time=lambda: 1_700_000_000.0))
    cid = maria["individuo"]["id"]
    files = {"file": ("rg.pdf", PDF_BYTES, "application/pdf")}
    first = await upload(client, tecnico_headers, files, individuo_id=cid)
    second = await upload(client, tecnico_headers, {"file": ("rg.pdf", PNG_BYTES, "application/pdf")}, individuo_id=cid)
    assert first.status_code == 201
    assert second.status_code == 201

    stored = [p for p in storage.root.rglob("*") if p.is_file()]
    assert len(stored) == 2

    for anexo, content in ((first.json(), PDF_BYTES), (second.json(), PNG_BYTES)):
        signed = await client.get(f"/api/v1/attachments/{anexo['id']}/signed-url", headers=tecnico_headers)
        download = await client.get(signed.json()["url"])
        assert download.status_code == 200
        assert download.content == content


async def test_local_storage_never_overwrites_a_blob(storage):
    await storage.put("t/o/rg.pdf", b"original", "application/pdf")
    with pytest.raises(StorageError):
        await storage.put("t/o/rg.pdf", b"replacement", "application/pdf")
    assert await storage.get("t/o/rg.pdf") == b"original"


async def test_family_detail_lists_its_attachments(client, maria, tecnico_headers):
    fid = maria["familia"]["id"]
    up = await upload(client, tecnico_headers, {"file": ("comprovante.png", PNG_BYTES, "image/png")}, familia_id=fid)
    res = await client.get(f"/api/v1/families/{fid}", headers=tecnico_headers)
    assert res.status_code == 200
    assert [a["id"] for a in res.json()["anexos"]] == [up.json()["id"]]
