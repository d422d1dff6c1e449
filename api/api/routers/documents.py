"""Document upload endpoints for technicians."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile

from api.dependencies import CurrentUser, SessionDep, StorageClientDep
from api.middleware.rbac import Permission, require_permission
from api.schemas import DocumentListResponse, DocumentResponse
from api.services.document_service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    session: SessionDep,
    storage: StorageClientDep,
    user: CurrentUser = Depends(require_permission(Permission.UPLOAD_DOCUMENTS)),
) -> DocumentListResponse:
    rows = await DocumentService(session, storage, technician_id=user.user_id).list_documents()
    return DocumentListResponse(documents=[DocumentResponse.model_validate(row) for row in rows])


@router.post("", response_model=DocumentResponse, status_code=201)
async def upload_document(
    session: SessionDep,
    storage: StorageClientDep,
    doc_type: str = Form(...),
    file: UploadFile = File(...),
    user: CurrentUser = Depends(require_permission(Permission.UPLOAD_DOCUMENTS)),
) -> DocumentResponse:
    """Upload a licence, type-rating, or certificate document (multipart)."""
    content = await file.read()
    service = DocumentService(session, storage, technician_id=user.user_id)
    row = await service.upload(
        doc_type,
        file.filename or "document",
        content,
        file.content_type or "application/octet-stream",
    )
    return DocumentResponse.model_validate(row)
