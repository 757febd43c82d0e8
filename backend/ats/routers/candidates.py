from datetime import date, datetime, time
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Response

from .. import responses
from ..config import MAX_DB_ID, Settings
from ..dependencies import get_candidate_service, get_settings
from ..repositories import CandidateFilters
from ..schemas import CandidateOut
from ..services import CandidatePage, CandidateService

router = APIRouter()


def _page_response(page: CandidatePage):
    return responses.success(
        [CandidateOut.model_validate(c).to_json() for c in page.candidates],
        meta={
            "total": page.total,
            "page": page.page,
            "limit": page.limit,
            "totalPages": page.total_pages,
        },
    )


@router.post("", status_code=201)
def create_candidate(
    payload: Any = Body(None),
    service: CandidateService = Depends(get_candidate_service),
    settings: Settings = Depends(get_settings),
):
    candidate = service.create_candidate(payload, settings.default_recruiter_id)
    return responses.success(CandidateOut.model_validate(candidate).to_json(), status_code=201)


@router.get("")
def list_candidates(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    recruiter_id: Optional[int] = Query(None, alias="recruiterId", ge=1, le=MAX_DB_ID),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    service: CandidateService = Depends(get_candidate_service),
):
    filters = CandidateFilters(
        search=(search or "").strip() or None,
        recruiter_id=recruiter_id,
        start_date=datetime.combine(start_date, time.min) if start_date else None,
        end_date=datetime.combine(end_date, time.max) if end_date else None,
    )
    return _page_response(service.get_all_candidates(filters, page, limit))


# declared before /{candidate_id} so "search" is not parsed as an id
@router.get("/search")
def search_candidates(
    q: Optional[str] = Query(None),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    service: CandidateService = Depends(get_candidate_service),
):
    return _page_response(service.search_candidates(q, page, limit))


@router.get("/{candidate_id}")
def get_candidate(candidate_id: int, service: CandidateService = Depends(get_candidate_service)):
    candidate = service.get_candidate_by_id(candidate_id)
    return responses.success(CandidateOut.model_validate(candidate).to_json())


@router.put("/{candidate_id}")
def update_candidate(
    candidate_id: int,
    payload: Any = Body(None),
    service: CandidateService = Depends(get_candidate_service),
):
    candidate = service.update_candidate(candidate_id, payload)
    return responses.success(CandidateOut.model_validate(candidate).to_json())


@router.delete("/{candidate_id}", status_code=204)
def delete_candidate(candidate_id: int, service: CandidateService = Depends(get_candidate_service)):
    service.delete_candidate(candidate_id)
    return Response(status_code=204)
