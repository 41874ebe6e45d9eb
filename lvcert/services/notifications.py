# lvcert/services/notifications.py
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import NamedTuple, Optional, Sequence, Tuple

from jinja2 import Environment, BaseLoader, select_autoescape

from lvcert.core.config import settings
from lvcert.services.rendering import CertificateSnapshot, certificate_filename

logger = logging.getLogger(__name__)


class EmailAttachment(NamedTuple):
    filename: str
    content: bytes
    mime_type: str = "application/pdf"


class EmailProvider:
    def send(
        self,
        *,
        to: str,
        subject: str,
        body: str,
        attachments: Sequence[EmailAttachment] = (),
    ) -> None:
        raise NotImplementedError


class NoopProvider(EmailProvider):
    def send(self, *, to, subject, body, attachments=()) -> None:
        logger.info("Email to %s suppressed (noop provider): %s", to, subject)


class SmtpProvider(EmailProvider):
    def __init__(self, host: str, port: int, user: str = "", password: str = "",
                 use_tls: bool = True, sender: str = ""):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.sender = sender

    def send(self, *, to, subject, body, attachments=()) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        for att in attachments:
            maintype, _, subtype = att.mime_type.partition("/")
            msg.add_attachment(att.content, maintype=maintype, subtype=subtype, filename=att.filename)

        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(msg)


def get_email_provider() -> EmailProvider:
    name = (settings.EMAIL_PROVIDER or "").strip().lower()
    if not name or name in {"none", "noop", "disabled"}:
        return NoopProvider()
    if name == "smtp":
        return SmtpProvider(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            sender=settings.EMAIL_FROM,
        )
    raise ValueError(f"Unsupported email provider: {name}")


# ------------------------- templates -------------------------

_ISSUED_SUBJECT = "Your Certificate of Completion"
_ISSUED_BODY = """
Dear {{ student_name }},

Congratulations! Your certificate for {{ course_title }} has been generated.
You can verify it at any time using the code {{ code }}:
{{ verification_url }}

Best regards,
The Team
""".strip()

_env = Environment(
    loader=BaseLoader(),
    autoescape=select_autoescape(["html", "xml"], default_for_string=False),
    enable_async=False,
)


def render_issued_email(snapshot: CertificateSnapshot) -> Tuple[str, str]:
    body = _env.from_string(_ISSUED_BODY).render(
        student_name=snapshot.student_name,
        course_title=snapshot.course_title,
        code=snapshot.code,
        verification_url=snapshot.verification_url,
    )
    return _ISSUED_SUBJECT, body


def send_certificate_issued(
    snapshot: CertificateSnapshot,
    pdf: Optional[bytes],
    provider: Optional[EmailProvider] = None,
) -> None:
    provider = provider or get_email_provider()
    subject, body = render_issued_email(snapshot)
    attachments = []
    if pdf:
        attachments.append(EmailAttachment(certificate_filename(snapshot.code, revoked=False), pdf))
    provider.send(to=snapshot.student_email, subject=subject, body=body, attachments=attachments)
