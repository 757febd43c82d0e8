from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from ..models import Candidate, Education, WorkExperience
from .base import BaseRepository


LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Make LIKE wildcards in user input match literally."""
    return term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", r"\%").replace("_", r"\_")


@dataclass
class CandidateFilters:
    search: Optional[str] = None
    recruiter_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CandidateRepository(ABC):
    @abstractmethod
    def create(self, data: Dict[str, Any], recruiter_id: int) -> Candidate: ...

    @abstractmethod
    def find_by_id(self, candidate_id: int) -> Optional[Candidate]: ...

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[Candidate]: ...

    @abstractmethod
    def find_all(
        self, filters: Optional[CandidateFilters] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Candidate], int]: ...

    @abstractmethod
    def update(self, candidate_id: int, data: Dict[str, Any]) -> Candidate: ...

    @abstractmethod
    def delete(self, candidate_id: int) -> None: ...


def _with_relations(query):
    return query.options(
        selectinload(Candidate.educations),
        selectinload(Candidate.experiences),
        selectinload(Candidate.documents),
        selectinload(Candidate.recruiter),
    )


class SqlCandidateRepository(BaseRepository, CandidateRepository):
    def create(self, data: Dict[str, Any], recruiter_id: int) -> Candidate:
        fields = dict(data)
        educations = fields.pop("educations", None) or []
        experiences = fields.pop("experiences", None) or []

        candidate = Candidate(**fields, created_by=recruiter_id)
        candidate.educations = [Education(**item) for item in educations]
        candidate.experiences = [WorkExperience(**item) for item in experiences]
        try:
            self.db.add(candidate)
            self.db.commit()
        except SQLAlchemyError as exc:
            self._handle_db_error(exc)
        return self.find_by_id(candidate.id)

    def find_by_id(self, candidate_id: int) -> Optional[Candidate]:
        stmt = _with_relations(select(Candidate)).where(Candidate.id == candidate_id)
        return self.db.execute(stmt).scalars().first()

    def find_by_email(self, email: str) -> Optional[Candidate]:
        stmt = select(Candidate).where(Candidate.email == email)
        return self.db.execute(stmt).scalars().first()

    def find_all(
        self, filters: Optional[CandidateFilters] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Candidate], int]:
        conditions = []
        if filters:
            if filters.search:
                pattern = f"%{escape_like(filters.search)}%"
                conditions.append(
                    or_(
                        Candidate.first_name.ilike(pattern, escape=LIKE_ESCAPE),
                        Candidate.last_name.ilike(pattern, escape=LIKE_ESCAPE),
                        Candidate.email.ilike(pattern, escape=LIKE_ESCAPE),
                    )
                )
            if filters.recruiter_id:
                conditions.append(Candidate.created_by == filters.recruiter_id)
            if filters.start_date:
                conditions.append(Candidate.created_at >= filters.start_date)
            if filters.end_date:
                conditions.append(Candidate.created_at <= filters.end_date)

        count_stmt = select(func.count(Candidate.id))
        stmt = _with_relations(select(Candidate))
        if conditions:
            count_stmt = count_stmt.where(*conditions)
            stmt = stmt.where(*conditions)
        total = self.db.execute(count_stmt).scalar_one()

        offset = (page - 1) * limit
        if offset >= total:
            return [], total

        stmt = (
            stmt.order_by(Candidate.created_at.desc(), Candidate.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all()), total

    def update(self, candidate_id: int, data: Dict[str, Any]) -> Candidate:
        candidate = self.db.get(Candidate, candidate_id)
        if candidate is None:
            self._missing()

        fields = dict(data)
        educations = fields.pop("educations", None)
        experiences = fields.pop("experiences", None)
        for name, value in fields.items():
            setattr(candidate, name, value)
        # nested collections are replaced wholesale; delete-orphan drops the old rows
        if educations is not None:
            candidate.educations = [Education(**item) for item in educations]
        if experiences is not None:
            candidate.experiences = [WorkExperience(**item) for item in experiences]
        candidate.updated_at = func.now()

        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self._handle_db_error(exc)
        self.db.expire_all()
        return self.find_by_id(candidate_id)

    def delete(self, candidate_id: int) -> None:
        candidate = self.db.get(Candidate, candidate_id)
        if candidate is None:
            self._missing()
        try:
            self.db.delete(candidate)
            self.db.commit()
        except SQLAlchemyError as exc:
            self._handle_db_error(exc)
