from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID, uuid4

from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.errors import BadRequestError, NotFoundError, ServiceFailureError, UnauthorizedError
from aurora.core.security import create_download_token, decode_token
from aurora.core.settings import get_app_settings
from aurora.db.models.attachments import Anexo
from aurora.db.models.security import User
from aurora.db.session import tenant_context
from aurora.repositories.attachments import AnexoRepository
from aurora.repositories.citizens import FamiliaRepository, IndividuoRepository
from aurora.schemas.attachments import SignedUrl
from aurora.services.base import BaseService
from aurora.services.storage import BlobStorage, StorageError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".pdf")
ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "application/pdf")

INVALID_DOWNLOAD = "Link de download inválido ou expirado"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


# PUBLIC_INTERFACE
def sanitize_file_name(file_name: str) -> str:
    """Strip directories and replace characters that are unsafe in storage keys."""
    base = file_name.replace("\\", "/").rsplit("/", 1)[-1].strip()
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned or "arquivo"


# PUBLIC_INTERFACE
def validate_upload(file_name: str, mime_type: str, size: int) -> None:
    """Reject files by extension, MIME type and size."""
    if not file_name or not file_name.lower().endswith(ALLOWED_EXTENSIONS):
        raise BadRequestError(
            f"Tipo de arquivo não permitido. Apenas {', '.join(ALLOWED_EXTENSIONS)} são aceitos."
        )
    if mime_type not in ALLOWED_MIME_TYPES:
        raise BadRequestError("Tipo de arquivo não permitido. Apenas imagens (JPG, PNG) e PDFs são aceitos.")
    max_bytes = get_app_settings().MAX_UPLOAD_BYTES
    if size > max_bytes:
        raise BadRequestError(f"Arquivo muito grande. Tamanho máximo: {max_bytes // (1024 * 1024)}MB")
    if size <= 0:
        raise BadRequestError("Arquivo vazio")


class AttachmentService(BaseService):
    """
    Attachments of families and citizens.

    Bytes live in blob storage under {tenant_id}/{owner_id}/{timestamp}-{nonce}-{file_name};
    the Anexo row holds the metadata and the storage key.
    """

    def __init__(self, session: AsyncSession, storage: BlobStorage) -> None:
        super().__init__(session)
        self.storage = storage
        self.repo = AnexoRepository(session)

    async def _get(self, anexo_id: UUID, message: str = "Anexo não encontrado") -> Anexo:
        anexo = await self.repo.get(anexo_id)
        if anexo is None:
            raise NotFoundError(message)
        return anexo

    # PUBLIC_INTERFACE
    async def upload(
        self,
        user: User,
        file_name: str,
        mime_type: str,
        data: bytes,
        familia_id: Optional[UUID] = None,
        individuo_id: Optional[UUID] = None,
    ) -> Anexo:
        """
        Validate and store a file for exactly one owner.

        Raises:
            BadRequestError: owner missing/ambiguous, or file rejected.
            NotFoundError: the owner does not exist in the tenant.
            ServiceFailureError: storage failed; nothing was saved.
        """
        if familia_id is None and individuo_id is None:
            raise BadRequestError("É necessário especificar familiaId ou individuoId")
        if familia_id is not None and individuo_id is not None:
            raise BadRequestError("Não é possível anexar a família e indivíduo simultaneamente")
        validate_upload(file_name, mime_type, len(data))

        if familia_id is not None:
            if await FamiliaRepository(self.session).get(familia_id) is None:
                raise NotFoundError("Família não encontrada")
        elif await IndividuoRepository(self.session).get(individuo_id) is None:
            raise NotFoundError("Cidadão não encontrado")

        owner_id = familia_id or individuo_id
        key = (
            f"{user.tenant_id}/{owner_id}/{int(time.time() * 1000)}-{uuid4().hex[:8]}-"
            f"{sanitize_file_name(file_name)}"
        )
        try:
            await self.storage.put(key, data, mime_type)
        except StorageError as exc:
            logger.error("Blob upload failed for %s: %s", key, exc)
            raise ServiceFailureError("Falha ao fazer upload do arquivo. Tente novamente.") from exc

        try:
            anexo = await self.repo.create(
                storage_key=key,
                file_name=file_name,
                file_size=len(data),
                mime_type=mime_type,
                uploaded_by=user.id,
                familia_id=familia_id,
                individuo_id=individuo_id,
            )
            await self.repo.commit()
        except Exception:
            await self.session.rollback()
            await self.storage.delete(key)
            raise
        logger.info("Attachment %s uploaded (%d bytes)", anexo.id, anexo.file_size)
        return anexo

    # PUBLIC_INTERFACE
    async def delete(self, anexo_id: UUID) -> None:
        """Remove the blob, then the metadata."""
        anexo = await self._get(anexo_id)
        try:
            await self.storage.delete(anexo.storage_key)
        except StorageError as exc:
            logger.error("Blob delete failed for %s: %s", anexo.storage_key, exc)
            raise ServiceFailureError("Falha ao excluir anexo. Tente novamente.") from exc
        await self.repo.delete(anexo)
        await self.repo.commit()
        logger.info("Attachment %s deleted", anexo_id)

    # PUBLIC_INTERFACE
    async def signed_url(self, anexo_id: UUID) -> SignedUrl:
        """Return a download URL carrying a short-lived token for this attachment."""
        anexo = await self._get(anexo_id, "Anexo não encontrado ou você não tem permissão para acessá-lo")
        minutes = get_app_settings().SIGNED_URL_EXPIRE_MINUTES
        token = create_download_token(str(anexo.id), str(anexo.tenant_id), minutes)
        return SignedUrl(
            url=f"/api/v1/attachments/{anexo.id}/download?token={token}",
            file_name=anexo.file_name,
            mime_type=anexo.mime_type,
            expires_at=datetime.now(tz=timezone.utc) + timedelta(minutes=minutes),
        )

    # PUBLIC_INTERFACE
    async def download(self, anexo_id: UUID, token: str) -> Tuple[Anexo, bytes]:
        """
        Resolve a signed download. The token alone authorizes the request, so
        the tenant is taken from its claims.
        """
        try:
            payload = decode_token(token)
        except JWTError:
            raise UnauthorizedError(INVALID_DOWNLOAD)
        if payload.get("type") != "download" or payload.get("sub") != str(anexo_id):
            raise UnauthorizedError(INVALID_DOWNLOAD)
        try:
            tenant_id = UUID(str(payload.get("tenant_id")))
        except ValueError:
            raise UnauthorizedError(INVALID_DOWNLOAD)

        async with tenant_context(self.session, tenant_id):
            anexo = await self._get(anexo_id)
        try:
            data = await self.storage.get(anexo.storage_key)
        except StorageError as exc:
            logger.error("Blob read failed for %s: %s", anexo.storage_key, exc)
            raise NotFoundError("Arquivo do anexo não encontrado") from exc
        return anexo, data
