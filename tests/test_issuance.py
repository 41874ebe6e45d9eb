# tests/test_issuance.py
import pytest

from lvcert.core.errors import ValidationFailed
from lvcert.services import notifications
from lvcert.services.issuance import issue_certificate


class RecordingProvider(notifications.EmailProvider):
    def __init__(self):
        self.sent = []

    def send(self, *, to, subject, body, attachments=()):
        self.sent.append({"to": to, "subject": subject, "body": body, "attachments": list(attachments)})


class BrokenProvider(notifications.EmailProvider):
    def send(self, *, to, subject, body, attachments=()):
        raise ConnectionError("smtp down")


def test_issue_sends_email_with_pdf(db_session, admin, enrolled):
    student, course, _ = enrolled
    provider = RecordingProvider()

    cert = issue_certificate(db_session, student_id=student.id, course_id=course.id, actor=admin, provider=provider)

    assert cert.student.name == student.name
    assert cert.course.title == course.title
    [mail] = provider.sent
    assert mail["to"] == student.email
    assert mail["subject"] == "Your Certificate of Completion"
    assert cert.code in mail["body"]
    assert f"/verify/{cert.code}" in mail["body"]
    [attachment] = mail["attachments"]
    assert attachment.filename == f"certificate-{cert.code}.pdf"
    assert attachment.content.startswith(b"%PDF")


def test_issue_survives_email_failure(db_session, admin, enrolled):
    student, course, _ = enrolled

    cert = issue_certificate(
        db_session, student_id=student.id, course_id=course.id, actor=admin, provider=BrokenProvider(),
    )

    assert cert.id is not None
    assert cert.status.value == "ACTIVE"


@pytest.mark.parametrize("student_id, course_id", [
    (0, 1),
    (1, -5),
    ("1", 1),
    (True, 1),
    (1, None),
])
def test_issue_rejects_bad_ids(db_session, admin, student_id, course_id):
    with pytest.raises(ValidationFailed):
        issue_certificate(db_session, student_id=student_id, course_id=course_id, actor=admin)


def test_noop_is_the_default_provider():
    assert isinstance(notifications.get_email_provider(), notifications.NoopProvider)


def test_unknown_provider_is_rejected(restore_settings):
    restore_settings.EMAIL_PROVIDER = "carrier-pigeon"
    with pytest.raises(ValueError):
        notifications.get_email_provider()
