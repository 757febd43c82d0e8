from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from .config import Settings
from .repositories import SqlCandidateRepository, SqlDocumentRepository
from .services import CandidateService, DocumentService, EmailService, NotificationDispatcher
from .storage import ObjectStorage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_notifications(
    background_tasks: BackgroundTasks,
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_settings),
) -> NotificationDispatcher:
    return NotificationDispatcher(email_service, settings.recruiter_notification_email, background_tasks)


def get_candidate_service(
    db: Session = Depends(get_db),
    notifications: NotificationDispatcher = Depends(get_notifications),
    settings: Settings = Depends(get_settings),
) -> CandidateService:
    return CandidateService(
        SqlCandidateRepository(db),
        notifications,
        default_limit=settings.pagination_default_limit,
        max_limit=settings.pagination_max_limit,
    )


def get_document_service(
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
) -> DocumentService:
    return DocumentService(SqlDocumentRepository(db), SqlCandidateRepository(db), storage)
