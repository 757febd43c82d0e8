from typing import NoReturn

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import DuplicateError, NotFoundError

UNIQUE_VIOLATION_PGCODE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == UNIQUE_VIOLATION_PGCODE:
        return True
    return "unique" in str(orig).lower()


class BaseRepository:
    def __init__(self, db: Session):
        self.db = db

    def _handle_db_error(self, exc: Exception) -> NoReturn:
        """Roll back, then translate the two conditions callers care about.

        Anything else is re-raised unchanged.
        """
        self.db.rollback()
        if isinstance(exc, IntegrityError) and is_unique_violation(exc):
            raise DuplicateError("Resource already exists") from exc
        raise exc

    def _missing(self) -> NoReturn:
        raise NotFoundError("Resource not found")
