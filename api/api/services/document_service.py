"""Technician document upload and listing."""

from __future__ import annotations

import logging

from aeromatch_core.documents import build_document_path, is_valid_doc_type
from aeromatch_core.errors import DomainValidationError, ExternalServiceError
from aeromatch_core.state.repository import DocumentRepository, TechnicianRepository
from aeromatch_core.state.tables import DocumentTable
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.storage_client import StorageClient

logger = logging.getLogger(__name__)

MAX_DOCUMENT_BYTES = 10 * 1024 * 1024

_ALLOWED_CONTENT_TYPES: frozenset[str] = frozenset({"application/pdf", "image/jpeg", "image/png"})


class DocumentService:
    """Document operations on the acting technician's own files."""

    def __init__(self, session: AsyncSession, storage: StorageClient, *, technician_id: str) -> None:
        self._technician_id = technician_id
        self._storage = storage
        self._documents = DocumentRepository(session)
        self._technicians = TechnicianRepository(session)

    async def list_documents(self) -> list[DocumentTable]:
        return await self._documents.list_for_technician(self._technician_id)

    async def upload(self, doc_type: str, filename: str, content: bytes, content_type: str) -> DocumentTable:
        """Store the file and record it, replacing any earlier upload of *doc_type*.

        Raises
        ------
        DomainValidationError
            Unknown document type, empty or oversized file, or a file type
            other than PDF, JPEG, or PNG.
        ExternalServiceError
            The object store rejected the upload.
        """
        if not is_valid_doc_type(doc_type):
            raise DomainValidationError(f"Invalid document type '{doc_type}'")
        if not content:
            raise DomainValidationError("File is empty")
        if len(content) > MAX_DOCUMENT_BYTES:
            raise DomainValidationError("File exceeds the 10 MB limit")
        if content_type not in _ALLOWED_CONTENT_TYPES:
            raise DomainValidationError("Only PDF, JPEG, and PNG files are accepted")

        # Documents reference the technician row, which may not exist yet.
        if await self._technicians.get(self._technician_id) is None:
            await self._technicians.upsert(self._technician_id, {"is_available": False})

        path = build_document_path(self._technician_id, doc_type, filename)
        if await self._storage.upload(path, content, content_type) is None:
            raise ExternalServiceError("Document upload failed")

        row = await self._documents.upsert(self._technician_id, doc_type, path, filename)
        logger.info("Technician %s uploaded %s (%d bytes)", self._technician_id, doc_type, len(content))
        return row
