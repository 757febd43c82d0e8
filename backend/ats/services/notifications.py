from typing import Callable, Optional

from fastapi import BackgroundTasks

from ..logger import get_logger
from .email import CandidateContact, EmailService

logger = get_logger(__name__)


class NotificationDispatcher:
    """Fire-and-forget candidate emails.

    Sends are queued on the request's ``BackgroundTasks`` so they run after
    the response has gone out. Without a task queue they run inline. Either
    way a failed send is logged and never reaches the caller.
    """

    def __init__(
        self,
        email_service: EmailService,
        recruiter_email: str,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        self.email_service = email_service
        self.recruiter_email = recruiter_email
        self.background_tasks = background_tasks

    def candidate_created(self, candidate) -> None:
        contact = CandidateContact.from_candidate(candidate)
        self._submit("candidate created", self.email_service.notify_candidate_created, contact, self.recruiter_email)
        self._submit("candidate welcome", self.email_service.notify_candidate_welcome, contact)

    def candidate_updated(self, candidate) -> None:
        contact = CandidateContact.from_candidate(candidate)
        self._submit("candidate updated", self.email_service.notify_candidate_updated, contact, self.recruiter_email)

    def _submit(self, label: str, send: Callable, *args) -> None:
        if self.background_tasks is not None:
            self.background_tasks.add_task(_deliver, label, send, *args)
        else:
            _deliver(label, send, *args)


def _deliver(label: str, send: Callable, *args) -> None:
    try:
        send(*args)
    except Exception:
        logger.exception(f"Failed to send '{label}' notification")
