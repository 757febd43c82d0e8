from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..models import Document, UploadStatus
from .base import BaseRepository


class DocumentRepository(ABC):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Document: ...

    @abstractmethod
    def find_by_id(self, document_id: int) -> Optional[Document]: ...

    @abstractmethod
    def find_by_candidate_id(self, candidate_id: int) -> List[Document]: ...

    @abstractmethod
    def find_by_file_path(self, file_path: str) -> Optional[Document]: ...

    @abstractmethod
    def update(self, document_id: int, data: Dict[str, Any]) -> Document: ...

    @abstractmethod
    def delete(self, document_id: int) -> None: ...

    @abstractmethod
    def update_upload_status(self, document_id: int, status: UploadStatus) -> Document: ...


class SqlDocumentRepository(BaseRepository, DocumentRepository):
    def create(self, data: Dict[str, Any]) -> Document:
        fields = dict(data)
        fields.setdefault("upload_status", UploadStatus.PENDING)
        document = Document(**fields)
        try:
            self.db.add(document)
            self.db.commit()
        except SQLAlchemyError as exc:
            self._handle_db_error(exc)
        self.db.refresh(document)
        return document

    def find_by_id(self, document_id: int) -> Optional[Document]:
        return self.db.get(Document, document_id)

    def find_by_candidate_id(self, candidate_id: int) -> List[Document]:
        stmt = (
            select(Document)
            .where(Document.candidate_id == candidate_id)
            .order_by(Document.created_at.desc(), Document.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def find_by_file_path(self, file_path: str) -> Optional[Document]:
        stmt = select(Document).where(Document.file_path == file_path)
        return self.db.execute(stmt).scalars().first()

    def update(self, document_id: int, data: Dict[str, Any]) -> Document:
        document = self.db.get(Document, document_id)
        if document is None:
            self._missing()
        for name, value in data.items():
            setattr(document, name, value)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self._handle_db_error(exc)
        self.db.refresh(document)
        return document

    def delete(self, document_id: int) -> None:
        document = self.db.get(Document, document_id)
        if document is None:
            self._missing()
        try:
            self.db.delete(document)
            self.db.commit()
        except SQLAlchemyError as exc:
            self._handle_db_error(exc)

    def update_upload_status(self, document_id: int, status: UploadStatus) -> Document:
        return self.update(document_id, {"upload_status": status})
