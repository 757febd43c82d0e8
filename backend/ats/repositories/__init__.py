from .candidates import CandidateFilters, CandidateRepository, SqlCandidateRepository
from .documents import DocumentRepository, SqlDocumentRepository

__all__ = [
    "CandidateFilters",
    "CandidateRepository",
    "DocumentRepository",
    "SqlCandidateRepository",
    "SqlDocumentRepository",
]
