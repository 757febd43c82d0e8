"""Orchestrates the database and the object store for candidate documents.

The two stores are written independently; there is no rollback coupling.
Two gaps follow from that and are kept on purpose:

* an object uploaded successfully whose metadata insert then fails stays in
  the bucket as an orphan (its path is logged);
* if deleting a document fails half way, the row is flagged ``DELETED`` and
  the original error is still raised, so an object may outlive any row that
  points at it. ``list_stored_files`` exposes the raw bucket listing for
  reconciliation.
"""
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..config import DEFAULT_URL_EXPIRY, MAX_DB_ID
from ..errors import BusinessError, DuplicateError, FileUploadError, NotFoundError, ValidationError
from ..logger import get_logger
from ..models import Document, DocumentType, UploadStatus
from ..repositories import CandidateRepository, DocumentRepository
from ..storage import IncomingFile, ObjectStorage, PresignedUpload, document_prefix

logger = get_logger(__name__)

ALLOWED_TRANSITIONS = {
    UploadStatus.PENDING: {UploadStatus.UPLOADED, UploadStatus.FAILED},
    UploadStatus.UPLOADED: {UploadStatus.DELETED},
    UploadStatus.FAILED: {UploadStatus.DELETED},
    UploadStatus.DELETED: set(),
}


@dataclass
class DocumentWithUrl:
    document: Document
    download_url: Optional[str]


@dataclass
class DownloadedDocument:
    content: bytes
    file_name: str
    mime_type: str


class DocumentService:
    def __init__(
        self,
        documents: DocumentRepository,
        candidates: CandidateRepository,
        storage: ObjectStorage,
    ):
        self.documents = documents
        self.candidates = candidates
        self.storage = storage

    def _require_candidate(self, candidate_id: int) -> None:
        if candidate_id > MAX_DB_ID or self.candidates.find_by_id(candidate_id) is None:
            raise NotFoundError("Candidate not found")

    def upload_document(
        self,
        file: IncomingFile,
        candidate_id: int,
        document_type: DocumentType = DocumentType.CV,
    ) -> Document:
        self._require_candidate(candidate_id)

        try:
            result = self.storage.upload_file(file, candidate_id, document_type)
        except FileUploadError:
            logger.error(f"Upload of '{file.original_name}' for candidate {candidate_id} failed")
            raise

        try:
            document = self.documents.create(
                {
                    "candidate_id": candidate_id,
                    "file_name": result.file_name,
                    "original_name": result.original_name,
                    "mime_type": result.mime_type,
                    "file_size": result.file_size,
                    "file_path": result.file_path,
                    "bucket_name": result.bucket_name,
                    "etag": result.etag,
                    "document_type": DocumentType(document_type),
                    "upload_status": UploadStatus.UPLOADED,
                }
            )
        except (DuplicateError, SQLAlchemyError) as exc:
            logger.error(f"Metadata insert failed, object left orphaned at {result.file_path}: {exc}")
            raise BusinessError(f"Error registering uploaded document: {exc}") from exc

        logger.info(f"Document {document.id} uploaded for candidate {candidate_id}")
        return document

    def get_document_by_id(self, document_id: int) -> Document:
        if document_id > MAX_DB_ID:
            raise NotFoundError("Document not found")
        document = self.documents.find_by_id(document_id)
        if document is None:
            raise NotFoundError("Document not found")
        return document

    def get_candidate_documents(self, candidate_id: int) -> List[Document]:
        self._require_candidate(candidate_id)
        return self.documents.find_by_candidate_id(candidate_id)

    def get_candidate_documents_with_urls(self, candidate_id: int) -> List[DocumentWithUrl]:
        results = []
        for document in self.get_candidate_documents(candidate_id):
            try:
                url = self.storage.get_presigned_download_url(document.file_path)
            except FileUploadError as exc:
                logger.warning(f"Could not sign URL for document {document.id}: {exc}")
                url = None
            results.append(DocumentWithUrl(document=document, download_url=url))
        return results

    def get_documents_by_type(self, candidate_id: int, document_type: DocumentType) -> List[Document]:
        document_type = DocumentType(document_type)
        return [d for d in self.get_candidate_documents(candidate_id) if d.document_type == document_type]

    def download_document(self, document_id: int) -> DownloadedDocument:
        document = self.get_document_by_id(document_id)
        content = self.storage.get_file(document.file_path)
        return DownloadedDocument(content=content, file_name=document.original_name, mime_type=document.mime_type)

    def get_download_url(self, document_id: int, expires_in: int = DEFAULT_URL_EXPIRY) -> str:
        document = self.get_document_by_id(document_id)
        return self.storage.get_presigned_download_url(document.file_path, expires_in)

    def delete_document(self, document_id: int) -> None:
        document = self.get_document_by_id(document_id)

        try:
            self.storage.delete_file(document.file_path)
            self.documents.delete(document_id)
        except FileUploadError:
            self._mark_deleted(document_id)
            raise
        except (NotFoundError, SQLAlchemyError) as exc:
            self._mark_deleted(document_id)
            raise BusinessError(f"Error deleting document: {exc}") from exc

        logger.info(f"Document {document_id} deleted")

    def _mark_deleted(self, document_id: int) -> None:
        try:
            self.documents.update_upload_status(document_id, UploadStatus.DELETED)
            logger.warning(f"Document {document_id} marked DELETED after a failed delete")
        except (NotFoundError, SQLAlchemyError) as exc:
            logger.error(f"Could not mark document {document_id} as DELETED: {exc}")

    def get_presigned_upload_url(
        self,
        candidate_id: int,
        file_name: str,
        document_type: DocumentType = DocumentType.CV,
        expires_in: int = DEFAULT_URL_EXPIRY,
    ) -> PresignedUpload:
        self._require_candidate(candidate_id)
        return self.storage.get_presigned_upload_url(candidate_id, file_name, document_type, expires_in)

    def register_uploaded_document(
        self,
        candidate_id: int,
        file_path: str,
        original_name: str,
        document_type: DocumentType = DocumentType.CV,
    ) -> Document:
        """Record metadata for an object a client pushed through a presigned URL."""
        self._require_candidate(candidate_id)

        prefix = document_prefix(candidate_id, document_type)
        file_name = file_path[len(prefix):]
        if not file_path.startswith(prefix) or not file_name or "/" in file_name:
            raise ValidationError(
                f"File path must be located under {prefix}",
                details=[{"field": "filePath", "message": f"Expected {prefix}<file name>"}],
            )
        if self.documents.find_by_file_path(file_path) is not None:
            raise DuplicateError("Document already registered")

        stats = self.storage.get_file_stats(file_path)
        try:
            document = self.documents.create(
                {
                    "candidate_id": candidate_id,
                    "file_name": file_name,
                    "original_name": original_name,
                    "mime_type": stats.content_type or "application/octet-stream",
                    "file_size": stats.size,
                    "file_path": file_path,
                    "bucket_name": self.storage.bucket_name,
                    "etag": stats.etag,
                    "document_type": DocumentType(document_type),
                    "upload_status": UploadStatus.UPLOADED,
                }
            )
        except DuplicateError:
            raise DuplicateError("Document already registered")
        except SQLAlchemyError as exc:
            raise BusinessError(f"Error registering document: {exc}") from exc

        logger.info(f"Document {document.id} registered from presigned upload for candidate {candidate_id}")
        return document

    def update_document_status(self, document_id: int, status: UploadStatus) -> Document:
        document = self.get_document_by_id(document_id)
        status = UploadStatus(status)
        current = UploadStatus(document.upload_status)
        if status not in ALLOWED_TRANSITIONS[current]:
            raise BusinessError(
                f"Cannot change upload status from {current.value} to {status.value}",
                code="INVALID_STATUS_TRANSITION",
            )
        try:
            return self.documents.update_upload_status(document_id, status)
        except SQLAlchemyError as exc:
            raise BusinessError(f"Error updating document status: {exc}") from exc

    def list_stored_files(self, candidate_id: int) -> List[str]:
        self._require_candidate(candidate_id)
        return self.storage.list_files(candidate_id)
