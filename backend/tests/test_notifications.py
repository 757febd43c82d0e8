import smtplib
from datetime import datetime
from types import SimpleNamespace

from fastapi import BackgroundTasks

from ats.services import CandidateContact, EmailService, NotificationDispatcher
from ats.services.email import candidate_created_template, candidate_welcome_template


def _candidate(**overrides):
    fields = dict(
        first_name="Juan",
        last_name="Pérez",
        email="juan@example.com",
        phone="+34 123 456 789",
        address="Calle Test 123",
        created_at=datetime(2024, 5, 1, 9, 30),
        updated_at=datetime(2024, 5, 2, 18, 45),
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.messages = []
        self.started_tls = False
        self.logged_in = None
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = (username, password)

    def send_message(self, msg):
        self.messages.append(msg)

    def noop(self):
        return (250, b"OK")


def test_templates_escape_html():
    contact = CandidateContact.from_candidate(_candidate(first_name="<b>Juan</b>"))

    template = candidate_created_template(contact)

    assert "&lt;b&gt;Juan&lt;/b&gt;" in template.html
    assert "<b>Juan</b>" not in template.html
    assert template.subject == "New candidate registered: <b>Juan</b> Pérez"


def test_welcome_template_addresses_candidate():
    template = candidate_welcome_template(CandidateContact.from_candidate(_candidate()))

    assert template.subject == "Welcome to our selection process, Juan!"
    assert "Dear Juan Pérez," in template.text
    assert "2024-05-01" in template.text


def test_send_email_builds_multipart_message(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    service = EmailService(
        host="mail.local",
        port=587,
        from_address="ATS <ats@company.com>",
        username="user",
        password="secret",
        use_tls=True,
    )

    service.notify_candidate_welcome(CandidateContact.from_candidate(_candidate()))

    server = FakeSMTP.instances[0]
    assert server.started_tls
    assert server.logged_in == ("user", "secret")
    msg = server.messages[0]
    assert msg["To"] == "juan@example.com"
    assert msg.get_content_type() == "multipart/alternative"
    assert [part.get_content_type() for part in msg.get_payload()] == ["text/plain", "text/html"]


def test_disabled_service_does_not_connect(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    service = EmailService(host="mail.local", port=25, from_address="ats@company.com", enabled=False)

    service.notify_candidate_created(CandidateContact.from_candidate(_candidate()), "recruiter@ats.com")

    assert FakeSMTP.instances == []


def test_verify_connection_reports_failure(monkeypatch):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("no server")

    monkeypatch.setattr(smtplib, "SMTP", refuse)
    service = EmailService(host="mail.local", port=25, from_address="ats@company.com")

    assert service.verify_connection() is False


def test_verify_connection_succeeds(monkeypatch):
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    service = EmailService(host="mail.local", port=25, from_address="ats@company.com")

    assert service.verify_connection() is True


def test_dispatcher_queues_sends_as_background_tasks(email_service):
    tasks = BackgroundTasks()
    dispatcher = NotificationDispatcher(email_service, "recruiter@ats.com", tasks)

    dispatcher.candidate_created(_candidate())

    assert len(tasks.tasks) == 2
    assert email_service.sent == []


def test_dispatcher_inline_sends_created_and_welcome(email_service):
    NotificationDispatcher(email_service, "recruiter@ats.com").candidate_created(_candidate())

    assert [to for to, _ in email_service.sent] == ["recruiter@ats.com", "juan@example.com"]


def test_dispatcher_swallows_send_failures(email_service):
    email_service.fail = True

    NotificationDispatcher(email_service, "recruiter@ats.com").candidate_updated(_candidate())

    assert email_service.sent == []
