"""S3-compatible object storage for candidate documents.

Objects live in a single bucket under
``candidates/{candidate_id}/{document_type}/{uuid}{ext}`` so everything a
candidate owns can be listed by prefix.
"""
import os
import uuid
from dataclasses import dataclass
from datetime import timedelta
from io import BytesIO
from typing import List, Optional
from urllib.parse import quote

import urllib3
from minio import Minio
from minio.error import MinioException

from .config import DEFAULT_URL_EXPIRY, Settings
from .errors import FileUploadError
from .logger import get_logger
from .models import DocumentType

logger = get_logger(__name__)

STORAGE_ERRORS = (MinioException, urllib3.exceptions.HTTPError, OSError, ValueError)


@dataclass
class IncomingFile:
    original_name: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class UploadResult:
    file_name: str
    original_name: str
    mime_type: str
    file_size: int
    file_path: str
    bucket_name: str
    etag: Optional[str]


@dataclass
class PresignedUpload:
    upload_url: str
    file_name: str
    file_path: str


@dataclass
class FileStats:
    size: int
    etag: Optional[str]
    content_type: Optional[str]


def build_minio_client(settings: Settings) -> Minio:
    return Minio(
        f"{settings.minio_endpoint}:{settings.minio_port}",
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_use_ssl,
        region=settings.minio_region,
    )


def candidate_prefix(candidate_id: int) -> str:
    return f"candidates/{candidate_id}/"


def document_prefix(candidate_id: int, document_type: DocumentType) -> str:
    return f"{candidate_prefix(candidate_id)}{DocumentType(document_type).value.lower()}/"


def unique_file_name(original_name: str) -> str:
    extension = os.path.splitext(original_name)[1]
    return f"{uuid.uuid4()}{extension}"


class ObjectStorage:
    def __init__(self, client: Minio, bucket_name: str, region: str = "us-east-1"):
        self.client = client
        self.bucket_name = bucket_name
        self.region = region

    def ensure_bucket(self) -> None:
        if not self.client.bucket_exists(bucket_name=self.bucket_name):
            self.client.make_bucket(bucket_name=self.bucket_name, location=self.region)
            logger.info(f"Created bucket '{self.bucket_name}'")

    def upload_file(
        self,
        file: IncomingFile,
        candidate_id: int,
        document_type: DocumentType = DocumentType.CV,
    ) -> UploadResult:
        document_type = DocumentType(document_type)
        file_name = unique_file_name(file.original_name)
        file_path = f"{document_prefix(candidate_id, document_type)}{file_name}"
        try:
            self.ensure_bucket()
            result = self.client.put_object(
                bucket_name=self.bucket_name,
                object_name=file_path,
                data=BytesIO(file.content),
                length=file.size,
                content_type=file.content_type,
                metadata={
                    "Content-Disposition": f"attachment; filename*=UTF-8''{quote(file.original_name)}",
                    "X-Original-Name": quote(file.original_name),
                    "X-Candidate-Id": str(candidate_id),
                    "X-Document-Type": document_type.value,
                },
            )
        except STORAGE_ERRORS as exc:
            raise FileUploadError(f"Error uploading file: {exc}") from exc

        return UploadResult(
            file_name=file_name,
            original_name=file.original_name,
            mime_type=file.content_type,
            file_size=file.size,
            file_path=file_path,
            bucket_name=self.bucket_name,
            etag=result.etag,
        )

    def get_file(self, file_path: str) -> bytes:
        response = None
        try:
            response = self.client.get_object(bucket_name=self.bucket_name, object_name=file_path)
            return response.read()
        except STORAGE_ERRORS as exc:
            raise FileUploadError(f"Error fetching file: {exc}") from exc
        finally:
            if response is not None:
                response.close()
                response.release_conn()

    def delete_file(self, file_path: str) -> None:
        # S3 semantics: removing a key that does not exist succeeds
        try:
            self.client.remove_object(bucket_name=self.bucket_name, object_name=file_path)
        except STORAGE_ERRORS as exc:
            raise FileUploadError(f"Error deleting file: {exc}") from exc

    def get_presigned_download_url(self, file_path: str, expires_in: int = DEFAULT_URL_EXPIRY) -> str:
        try:
            return self.client.presigned_get_object(
                bucket_name=self.bucket_name,
                object_name=file_path,
                expires=timedelta(seconds=expires_in),
            )
        except STORAGE_ERRORS as exc:
            raise FileUploadError(f"Error generating download URL: {exc}") from exc

    def get_presigned_upload_url(
        self,
        candidate_id: int,
        file_name: str,
        document_type: DocumentType = DocumentType.CV,
        expires_in: int = DEFAULT_URL_EXPIRY,
    ) -> PresignedUpload:
        unique_name = unique_file_name(file_name)
        file_path = f"{document_prefix(candidate_id, document_type)}{unique_name}"
        try:
            self.ensure_bucket()
            upload_url = self.client.presigned_put_object(
                bucket_name=self.bucket_name,
                object_name=file_path,
                expires=timedelta(seconds=expires_in),
            )
        except STORAGE_ERRORS as exc:
            raise FileUploadError(f"Error generating upload URL: {exc}") from exc
        return PresignedUpload(upload_url=upload_url, file_name=unique_name, file_path=file_path)

    def list_files(self, candidate_id: int) -> List[str]:
        try:
            objects = self.client.list_objects(
                bucket_name=self.bucket_name,
                prefix=candidate_prefix(candidate_id),
                recursive=True,
            )
            return [obj.object_name for obj in objects if obj.object_name]
        except STORAGE_ERRORS as exc:
            raise FileUploadError(f"Error listing files: {exc}") from exc

    def get_file_stats(self, file_path: str) -> FileStats:
        try:
            stat = self.client.stat_object(bucket_name=self.bucket_name, object_name=file_path)
        except STORAGE_ERRORS as exc:
            raise FileUploadError(f"Error reading file stats: {exc}") from exc
        return FileStats(size=stat.size, etag=stat.etag, content_type=stat.content_type)
