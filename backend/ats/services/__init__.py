from .candidates import CandidatePage, CandidateService
from .documents import DocumentService, DocumentWithUrl, DownloadedDocument
from .email import CandidateContact, EmailService
from .notifications import NotificationDispatcher

__all__ = [
    "CandidateContact",
    "CandidatePage",
    "CandidateService",
    "DocumentService",
    "DocumentWithUrl",
    "DownloadedDocument",
    "EmailService",
    "NotificationDispatcher",
]
