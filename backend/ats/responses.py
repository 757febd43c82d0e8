import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from .config import API_VERSION


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def request_id(request: Request) -> str:
    return request.headers.get("x-request-id") or f"req_{uuid.uuid4().hex[:12]}"


def success(data: Any = None, status_code: int = 200, meta: Optional[Dict[str, Any]] = None) -> JSONResponse:
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    body["meta"] = {"timestamp": utc_timestamp(), **(meta or {})}
    return JSONResponse(status_code=status_code, content=body)


def error(
    request: Request,
    status_code: int,
    error_type: str,
    code: str,
    message: str,
    environment: str,
    details: Optional[List[Dict[str, Any]]] = None,
) -> JSONResponse:
    timestamp = utc_timestamp()
    payload: Dict[str, Any] = {
        "type": error_type,
        "code": code,
        "message": message,
        "timestamp": timestamp,
        "path": request.url.path,
        "method": request.method,
        "requestId": request_id(request),
    }
    if details:
        payload["details"] = details
    body = {
        "success": False,
        "error": payload,
        "meta": {"timestamp": timestamp, "version": API_VERSION, "environment": environment},
    }
    return JSONResponse(status_code=status_code, content=body)
