from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base for errors that map onto a stable HTTP status and error code."""

    status_code = 500
    error_type = "AppError"
    default_code = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details


class ValidationError(AppError):
    status_code = 400
    error_type = "ValidationError"
    default_code = "VALIDATION_FAILED"


class NotFoundError(AppError):
    status_code = 404
    error_type = "NotFoundError"
    default_code = "RESOURCE_NOT_FOUND"

    def __init__(self, message: str = "Resource not found", **kwargs):
        super().__init__(message, **kwargs)


class DuplicateError(AppError):
    status_code = 409
    error_type = "DuplicateError"
    default_code = "RESOURCE_CONFLICT"

    def __init__(self, message: str = "Resource already exists", **kwargs):
        super().__init__(message, **kwargs)


class BusinessError(AppError):
    status_code = 400
    error_type = "BusinessError"
    default_code = "BUSINESS_RULE_VIOLATION"


class FileUploadError(AppError):
    status_code = 400
    error_type = "FileUploadError"
    default_code = "FILE_UPLOAD_FAILED"
