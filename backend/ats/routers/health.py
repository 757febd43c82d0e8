from fastapi import APIRouter, Depends

from .. import responses
from ..config import API_VERSION, Settings
from ..dependencies import get_settings

router = APIRouter()


@router.get("/health")
def health(settings: Settings = Depends(get_settings)):
    return responses.success(
        {"status": "ok", "environment": settings.environment, "version": API_VERSION}
    )
