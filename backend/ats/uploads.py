import os
from typing import Tuple

from fastapi import Request
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from .config import ALLOWED_EXTENSIONS, ALLOWED_MIME_TYPES, MAX_FILE_SIZE, MAX_FILES_PER_REQUEST
from .errors import FileUploadError
from .models import DocumentType
from .storage import IncomingFile

FILE_FIELD = "file"
DOCUMENT_TYPE_FIELD = "documentType"


def parse_document_type(value) -> DocumentType:
    try:
        return DocumentType((value or DocumentType.CV.value).strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in DocumentType)
        raise FileUploadError(f"Invalid document type. Allowed values: {allowed}", code="INVALID_FILE")


def check_extension(file_name: str) -> None:
    extension = os.path.splitext(file_name or "")[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise FileUploadError(
            f"File extension not allowed. Accepted: {', '.join(ALLOWED_EXTENSIONS)}",
            code="INVALID_FILE",
        )


def check_mime_type(content_type: str) -> None:
    if content_type not in ALLOWED_MIME_TYPES:
        raise FileUploadError(
            f"File type not allowed. Accepted: {', '.join(ALLOWED_MIME_TYPES)}",
            code="INVALID_FILE",
        )


async def read_upload(upload: UploadFile) -> IncomingFile:
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    check_mime_type(content_type)
    check_extension(upload.filename)

    content = await upload.read(MAX_FILE_SIZE + 1)
    if len(content) > MAX_FILE_SIZE:
        raise FileUploadError(
            f"File exceeds the maximum allowed size of {MAX_FILE_SIZE // (1024 * 1024)}MB",
            code="FILE_TOO_LARGE",
        )
    if not content:
        raise FileUploadError("Uploaded file is empty", code="INVALID_FILE")
    return IncomingFile(original_name=upload.filename, content_type=content_type, content=content)


async def read_document_form(request: Request) -> Tuple[IncomingFile, DocumentType]:
    """Parse a single-document multipart request.

    Everything here runs before the object store is touched.
    """
    try:
        form = await request.form(max_files=MAX_FILES_PER_REQUEST)
    except (MultiPartException, StarletteHTTPException) as exc:
        detail = getattr(exc, "detail", None) or getattr(exc, "message", str(exc))
        raise FileUploadError(f"Invalid multipart request: {detail}", code="INVALID_FILE")

    try:
        return await _single_document(form)
    finally:
        await form.close()


async def _single_document(form) -> Tuple[IncomingFile, DocumentType]:
    files = []
    for field_name, value in form.multi_items():
        if not isinstance(value, UploadFile):
            continue
        if field_name != FILE_FIELD:
            raise FileUploadError(f"Unexpected file field '{field_name}'", code="INVALID_FILE")
        files.append(value)

    if not files:
        raise FileUploadError("No file was provided", code="INVALID_FILE")
    if len(files) > 1:
        raise FileUploadError("Only one file can be uploaded per request", code="INVALID_FILE")

    document_type = parse_document_type(form.get(DOCUMENT_TYPE_FIELD))
    incoming = await read_upload(files[0])
    return incoming, document_type
