import html
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Optional

from ..config import Settings
from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CandidateContact:
    """Detached copy of the fields a template needs.

    Built before the request finishes so the email can be rendered after the
    database session is gone.
    """
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_candidate(cls, candidate) -> "CandidateContact":
        return cls(
            first_name=candidate.first_name,
            last_name=candidate.last_name,
            email=candidate.email,
            phone=candidate.phone,
            address=candidate.address,
            created_at=candidate.created_at,
            updated_at=candidate.updated_at,
        )


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    text: str
    html: str


def _format_date(value: Optional[datetime], with_time: bool = False) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M" if with_time else "%Y-%m-%d")


_HTML_LAYOUT = """<!DOCTYPE html>
<html>
  <head><meta charset="UTF-8"></head>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <div style="background: {color}; color: white; padding: 20px; text-align: center;">
        <h1>{title}</h1>
      </div>
      <div style="padding: 20px;">
        {body}
      </div>
      <p style="text-align: center; color: #666; font-size: 12px;">
        {footer}<br/>This is an automated message, please do not reply.
      </p>
    </div>
  </body>
</html>"""

_TEXT_FOOTER = "\n---\n{footer}\nThis is an automated message, please do not reply.\n"


def _details_html(rows) -> str:
    items = "".join(f"<li><strong>{html.escape(k)}:</strong> {html.escape(v)}</li>" for k, v in rows)
    return f"<ul>{items}</ul>"


def _details_text(rows) -> str:
    return "\n".join(f"- {k}: {v}" for k, v in rows)


def candidate_created_template(candidate: CandidateContact) -> EmailTemplate:
    rows = [
        ("Name", candidate.full_name),
        ("Email", candidate.email),
        ("Phone", candidate.phone),
        ("Address", candidate.address),
        ("Registered on", _format_date(candidate.created_at)),
    ]
    footer = "ATS - Candidate Management"
    body = (
        "<p>A new candidate has been registered in the ATS.</p>"
        f"{_details_html(rows)}"
        "<p>You can review the full profile in the ATS.</p>"
    )
    text = (
        f"New candidate registered: {candidate.full_name}\n\n"
        f"{_details_text(rows)}\n\n"
        "You can review the full profile in the ATS.\n" + _TEXT_FOOTER.format(footer=footer)
    )
    return EmailTemplate(
        subject=f"New candidate registered: {candidate.full_name}",
        text=text,
        html=_HTML_LAYOUT.format(color="#2563eb", title="New candidate in the ATS", body=body, footer=footer),
    )


def candidate_welcome_template(candidate: CandidateContact) -> EmailTemplate:
    rows = [
        ("Email", candidate.email),
        ("Phone", candidate.phone),
        ("Registered on", _format_date(candidate.created_at)),
    ]
    footer = "Human Resources Team"
    greeting = f"Dear {candidate.full_name},"
    message = (
        "Your profile has been registered in our candidate management system. "
        "Our team will review it and get in touch if your experience matches one of our openings."
    )
    body = (
        f"<p>{html.escape(greeting)}</p><p>{message}</p>"
        f"{_details_html(rows)}"
        "<p>Thank you for your interest in joining our team!</p>"
    )
    text = (
        f"{greeting}\n\n{message}\n\n{_details_text(rows)}\n\n"
        "Thank you for your interest in joining our team!\n" + _TEXT_FOOTER.format(footer=footer)
    )
    return EmailTemplate(
        subject=f"Welcome to our selection process, {candidate.first_name}!",
        text=text,
        html=_HTML_LAYOUT.format(
            color="#059669", title=f"Welcome {html.escape(candidate.first_name)}!", body=body, footer=footer
        ),
    )


def candidate_updated_template(candidate: CandidateContact) -> EmailTemplate:
    rows = [
        ("Name", candidate.full_name),
        ("Email", candidate.email),
        ("Phone", candidate.phone),
        ("Last updated", _format_date(candidate.updated_at, with_time=True)),
    ]
    footer = "ATS - Candidate Management"
    body = (
        "<p>A candidate's information has been updated in the ATS.</p>"
        f"{_details_html(rows)}"
        "<p>Review the changes in the ATS for more details.</p>"
    )
    text = (
        f"Candidate updated: {candidate.full_name}\n\n"
        f"{_details_text(rows)}\n\n"
        "Review the changes in the ATS for more details.\n" + _TEXT_FOOTER.format(footer=footer)
    )
    return EmailTemplate(
        subject=f"Candidate updated: {candidate.full_name}",
        text=text,
        html=_HTML_LAYOUT.format(color="#ea580c", title="Candidate updated", body=body, footer=footer),
    )


class EmailService:
    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
        enabled: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.from_address = from_address
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.enabled = enabled
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_address=settings.email_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            enabled=settings.smtp_enabled,
        )

    def _connect(self) -> smtplib.SMTP:
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if self.use_tls:
            server.starttls()
        if self.username and self.password:
            server.login(self.username, self.password)
        return server

    def send_email(self, to: str, template: EmailTemplate) -> None:
        if not self.enabled:
            logger.info(f"Email disabled, skipping '{template.subject}' to {to}")
            return

        msg = MIMEMultipart("alternative")
        msg["From"] = self.from_address
        msg["To"] = to
        msg["Subject"] = template.subject
        msg["Message-ID"] = make_msgid()
        msg.attach(MIMEText(template.text, "plain", "utf-8"))
        msg.attach(MIMEText(template.html, "html", "utf-8"))

        with self._connect() as server:
            server.send_message(msg)
        logger.info(f"Email sent to {to}: {msg['Message-ID']}")

    def notify_candidate_created(self, candidate: CandidateContact, recruiter_email: str) -> None:
        self.send_email(recruiter_email, candidate_created_template(candidate))

    def notify_candidate_welcome(self, candidate: CandidateContact) -> None:
        self.send_email(candidate.email, candidate_welcome_template(candidate))

    def notify_candidate_updated(self, candidate: CandidateContact, recruiter_email: str) -> None:
        self.send_email(recruiter_email, candidate_updated_template(candidate))

    def verify_connection(self) -> bool:
        try:
            with self._connect() as server:
                server.noop()
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP connection check failed: {e}")
            return False
        return True
