import math
from dataclasses import dataclass
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..config import MAX_DB_ID
from ..errors import BusinessError, DuplicateError, NotFoundError, ValidationError
from ..logger import get_logger
from ..models import Candidate
from ..repositories import CandidateFilters, CandidateRepository
from ..validation import validate_candidate, validate_candidate_update
from .notifications import NotificationDispatcher

logger = get_logger(__name__)

DEFAULT_PAGE = 1
MIN_SEARCH_LENGTH = 2


@dataclass
class CandidatePage:
    candidates: List[Candidate]
    total: int
    page: int
    limit: int
    total_pages: int


class CandidateService:
    def __init__(
        self,
        candidates: CandidateRepository,
        notifications: Optional[NotificationDispatcher] = None,
        default_limit: int = 10,
        max_limit: int = 100,
    ):
        self.candidates = candidates
        self.notifications = notifications
        self.default_limit = default_limit
        self.max_limit = max_limit

    def create_candidate(self, data: Any, recruiter_id: int) -> Candidate:
        value = validate_candidate(data)

        if self.candidates.find_by_email(value["email"]):
            raise DuplicateError("A candidate with this email already exists", code="DUPLICATE_EMAIL")

        try:
            candidate = self.candidates.create(value, recruiter_id)
        except DuplicateError as exc:
            raise DuplicateError("A candidate with this email already exists", code="DUPLICATE_EMAIL") from exc
        except SQLAlchemyError as exc:
            raise BusinessError(f"Error creating candidate: {exc}") from exc

        logger.info(f"Candidate {candidate.id} created by recruiter {recruiter_id}")
        if self.notifications:
            self.notifications.candidate_created(candidate)
        return candidate

    def get_candidate_by_id(self, candidate_id: Any) -> Candidate:
        if isinstance(candidate_id, bool) or not isinstance(candidate_id, int) or candidate_id <= 0:
            raise ValidationError(
                "Invalid candidate ID",
                details=[{"field": "id", "message": "ID must be a positive integer"}],
            )

        if candidate_id > MAX_DB_ID:
            raise NotFoundError("Candidate not found")

        candidate = self.candidates.find_by_id(candidate_id)
        if candidate is None:
            raise NotFoundError("Candidate not found")
        return candidate

    def get_all_candidates(
        self,
        filters: Optional[CandidateFilters] = None,
        page: int = DEFAULT_PAGE,
        limit: Optional[int] = None,
    ) -> CandidatePage:
        page = max(page or DEFAULT_PAGE, DEFAULT_PAGE)
        limit = self.default_limit if limit is None else limit
        limit = min(max(limit, 1), self.max_limit)

        candidates, total = self.candidates.find_all(filters, page, limit)
        return CandidatePage(
            candidates=candidates,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    def update_candidate(self, candidate_id: Any, data: Any) -> Candidate:
        self.get_candidate_by_id(candidate_id)

        value = validate_candidate_update(data)

        email = value.get("email")
        if email:
            existing = self.candidates.find_by_email(email)
            if existing is not None and existing.id != candidate_id:
                raise DuplicateError("Another candidate already uses this email", code="DUPLICATE_EMAIL")

        try:
            candidate = self.candidates.update(candidate_id, value)
        except DuplicateError as exc:
            raise DuplicateError("Another candidate already uses this email", code="DUPLICATE_EMAIL") from exc
        except NotFoundError:
            raise NotFoundError("Candidate not found")
        except SQLAlchemyError as exc:
            raise BusinessError(f"Error updating candidate: {exc}") from exc

        logger.info(f"Candidate {candidate_id} updated")
        if self.notifications:
            self.notifications.candidate_updated(candidate)
        return candidate

    def delete_candidate(self, candidate_id: Any) -> None:
        self.get_candidate_by_id(candidate_id)
        try:
            self.candidates.delete(candidate_id)
        except NotFoundError:
            raise NotFoundError("Candidate not found")
        except SQLAlchemyError as exc:
            raise BusinessError(f"Error deleting candidate: {exc}") from exc
        logger.info(f"Candidate {candidate_id} deleted")

    def search_candidates(self, term: Optional[str], page: int = DEFAULT_PAGE, limit: Optional[int] = None) -> CandidatePage:
        term = (term or "").strip()
        if len(term) < MIN_SEARCH_LENGTH:
            raise ValidationError(
                "Search term must be at least 2 characters long",
                details=[{"field": "q", "message": "Must be at least 2 characters long"}],
            )
        return self.get_all_candidates(CandidateFilters(search=term), page, limit)
