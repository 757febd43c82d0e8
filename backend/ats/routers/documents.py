from typing import Any, Optional
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, Path, Query, Request, Response
from fastapi.concurrency import run_in_threadpool

from .. import responses
from ..config import DEFAULT_URL_EXPIRY, MAX_URL_EXPIRY
from ..dependencies import get_document_service
from ..errors import ValidationError
from ..models import DocumentType
from ..schemas import (
    DocumentOut,
    DocumentRegistrationIn,
    DocumentStatusIn,
    DocumentWithUrlOut,
    DownloadUrlOut,
    PresignedUploadOut,
)
from ..services import DocumentService
from ..uploads import check_extension, read_document_form
from ..validation import parse_payload

router = APIRouter()


def _document_type(value: str) -> DocumentType:
    try:
        return DocumentType(value.strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in DocumentType)
        raise ValidationError(
            f"Invalid document type. Allowed values: {allowed}",
            details=[{"field": "documentType", "message": f"Must be one of {allowed}"}],
        )


@router.post("/candidates/{candidate_id}/documents", status_code=201)
async def upload_document(
    request: Request,
    candidate_id: int = Path(gt=0),
    service: DocumentService = Depends(get_document_service),
):
    file, document_type = await read_document_form(request)
    document = await run_in_threadpool(service.upload_document, file, candidate_id, document_type)
    return responses.success(DocumentOut.model_validate(document).to_json(), status_code=201)


@router.get("/candidates/{candidate_id}/documents")
def list_candidate_documents(
    candidate_id: int = Path(gt=0),
    with_urls: bool = Query(False, alias="withUrls"),
    service: DocumentService = Depends(get_document_service),
):
    if with_urls:
        data = []
        for item in service.get_candidate_documents_with_urls(candidate_id):
            out = DocumentWithUrlOut.model_validate(item.document)
            out.download_url = item.download_url
            data.append(out.to_json())
    else:
        data = [DocumentOut.model_validate(d).to_json() for d in service.get_candidate_documents(candidate_id)]
    return responses.success(data, meta={"total": len(data)})


@router.get("/candidates/{candidate_id}/documents/type/{document_type}")
def list_documents_by_type(
    document_type: str,
    candidate_id: int = Path(gt=0),
    service: DocumentService = Depends(get_document_service),
):
    documents = service.get_documents_by_type(candidate_id, _document_type(document_type))
    data = [DocumentOut.model_validate(d).to_json() for d in documents]
    return responses.success(data, meta={"total": len(data)})


@router.post("/candidates/{candidate_id}/documents/register", status_code=201)
def register_uploaded_document(
    candidate_id: int = Path(gt=0),
    payload: Any = Body(None),
    service: DocumentService = Depends(get_document_service),
):
    """Record a document whose bytes were pushed with a presigned upload URL."""
    registration = parse_payload(DocumentRegistrationIn, payload)
    check_extension(registration.original_name)
    document = service.register_uploaded_document(
        candidate_id,
        registration.file_path,
        registration.original_name,
        registration.document_type,
    )
    return responses.success(DocumentOut.model_validate(document).to_json(), status_code=201)


@router.get("/candidates/{candidate_id}/presigned-upload-url")
def presigned_upload_url(
    candidate_id: int = Path(gt=0),
    file_name: Optional[str] = Query(None, alias="fileName"),
    document_type: str = Query(DocumentType.CV.value, alias="documentType"),
    expires_in: int = Query(DEFAULT_URL_EXPIRY, alias="expiresIn", ge=1, le=MAX_URL_EXPIRY),
    service: DocumentService = Depends(get_document_service),
):
    file_name = (file_name or "").strip()
    if not file_name:
        raise ValidationError(
            "fileName query parameter is required",
            code="MISSING_FILENAME",
            details=[{"field": "fileName", "message": "Required"}],
        )
    check_extension(file_name)

    upload = service.get_presigned_upload_url(candidate_id, file_name, _document_type(document_type), expires_in)
    out = PresignedUploadOut(
        upload_url=upload.upload_url,
        file_name=upload.file_name,
        file_path=upload.file_path,
        expires_in=expires_in,
    )
    return responses.success(out.to_json())


@router.get("/candidates/{candidate_id}/files")
def list_stored_files(candidate_id: int = Path(gt=0), service: DocumentService = Depends(get_document_service)):
    files = service.list_stored_files(candidate_id)
    return responses.success(files, meta={"total": len(files)})


@router.get("/documents/{document_id}")
def get_document(document_id: int = Path(gt=0), service: DocumentService = Depends(get_document_service)):
    document = service.get_document_by_id(document_id)
    return responses.success(DocumentOut.model_validate(document).to_json())


@router.get("/documents/{document_id}/download")
def download_document(document_id: int = Path(gt=0), service: DocumentService = Depends(get_document_service)):
    downloaded = service.download_document(document_id)
    return Response(
        content=downloaded.content,
        media_type=downloaded.mime_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(downloaded.file_name)}"},
    )


@router.get("/documents/{document_id}/download-url")
def download_url(
    document_id: int = Path(gt=0),
    expires_in: int = Query(DEFAULT_URL_EXPIRY, alias="expiresIn", ge=1, le=MAX_URL_EXPIRY),
    service: DocumentService = Depends(get_document_service),
):
    url = service.get_download_url(document_id, expires_in)
    return responses.success(DownloadUrlOut(download_url=url, expires_in=expires_in).to_json())


@router.patch("/documents/{document_id}/status")
def update_document_status(
    document_id: int = Path(gt=0),
    payload: Any = Body(None),
    service: DocumentService = Depends(get_document_service),
):
    change = parse_payload(DocumentStatusIn, payload)
    document = service.update_document_status(document_id, change.upload_status)
    return responses.success(DocumentOut.model_validate(document).to_json())


@router.delete("/documents/{document_id}", status_code=204)
def delete_document(document_id: int = Path(gt=0), service: DocumentService = Depends(get_document_service)):
    service.delete_document(document_id)
    return Response(status_code=204)
