from __future__ import annotations

from typing import Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from aurora.core.deps import get_tenant_session, require_user
from aurora.core.settings import get_app_settings
from aurora.db.models.security import User
from aurora.db.session import get_async_session
from aurora.schemas.attachments import AnexoRead, SignedUrl
from aurora.schemas.common import MessageResponse
from aurora.services.attachments import AttachmentService
from aurora.services.storage import BlobStorage, get_blob_storage

router = APIRouter(prefix="/attachments", tags=["Attachments"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=AnexoRead,
    status_code=201,
    summary="Upload attachment",
    description=(
        "Upload a JPG, PNG or PDF (max 10 MB) for exactly one family or citizen. "
        "Multipart form with 'file' and one of 'familia_id' / 'individuo_id'."
    ),
)
async def upload_attachment(
    file: UploadFile = File(..., description="The document"),
    familia_id: Optional[UUID] = Form(None),
    individuo_id: Optional[UUID] = Form(None),
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_tenant_session),
    storage: BlobStorage = Depends(get_blob_storage),
) -> AnexoRead:
    # One byte over the limit is enough to reject the file.
    data = await file.read(get_app_settings().MAX_UPLOAD_BYTES + 1)
    anexo = await AttachmentService(session, storage).upload(
        user,
        file_name=file.filename or "",
        mime_type=file.content_type or "",
        data=data,
        familia_id=familia_id,
        individuo_id=individuo_id,
    )
    return AnexoRead.model_validate(anexo)


# PUBLIC_INTERFACE
@router.delete(
    "/{anexo_id}",
    response_model=MessageResponse,
    summary="Delete attachment",
    description="Remove the stored file and its metadata.",
    dependencies=[Depends(require_user)],
)
async def delete_attachment(
    anexo_id: UUID = Path(..., description="Attachment ID"),
    session: AsyncSession = Depends(get_tenant_session),
    storage: BlobStorage = Depends(get_blob_storage),
) -> MessageResponse:
    await AttachmentService(session, storage).delete(anexo_id)
    return MessageResponse(message="Anexo excluído")


# PUBLIC_INTERFACE
@router.get(
    "/{anexo_id}/signed-url",
    response_model=SignedUrl,
    summary="Signed download URL",
    description="Return a download URL valid for 15 minutes, with file name and MIME type.",
    dependencies=[Depends(require_user)],
)
async def get_signed_url(
    anexo_id: UUID = Path(..., description="Attachment ID"),
    session: AsyncSession = Depends(get_tenant_session),
    storage: BlobStorage = Depends(get_blob_storage),
) -> SignedUrl:
    return await AttachmentService(session, storage).signed_url(anexo_id)


# PUBLIC_INTERFACE
@router.get(
    "/{anexo_id}/download",
    summary="Download attachment",
    description="Stream the file. Authorized by the signed token from /signed-url; no bearer token needed.",
    response_class=Response,
)
async def download_attachment(
    anexo_id: UUID = Path(..., description="Attachment ID"),
    token: str = Query(..., min_length=1, description="Signed download token"),
    session: AsyncSession = Depends(get_async_session),
    storage: BlobStorage = Depends(get_blob_storage),
) -> Response:
    anexo, data = await AttachmentService(session, storage).download(anexo_id, token)
    headers = {"Content-Disposition": f"inline; filename*=UTF-8''{quote(anexo.file_name)}"}
    return Response(content=data, media_type=anexo.mime_type, headers=headers)
