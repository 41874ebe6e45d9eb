# lvcert/services/rendering.py
"""
Renderização do PDF do certificado (função pura: snapshot -> bytes).

O snapshot é montado a partir do certificado com aluno, curso e emissor já
resolvidos, para que o PDF não dependa de sessão aberta.
"""
from __future__ import annotations

import datetime as dt
import io
from dataclasses import dataclass
from typing import Optional

from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from lvcert.core.config import settings
from lvcert.models.certificate import Certificate, CertificateStatus
from lvcert.services import codes


@dataclass(frozen=True)
class CertificateSnapshot:
    certificate_id: int
    code: str
    status: CertificateStatus
    student_name: str
    student_email: str
    course_title: str
    course_description: Optional[str]
    issuer_name: str
    issued_at: dt.datetime
    verification_url: str
    revoked_at: Optional[dt.datetime] = None
    revocation_reason: Optional[str] = None
    revocation_notes: Optional[str] = None

    @property
    def is_revoked(self) -> bool:
        return self.status == CertificateStatus.REVOKED


def build_snapshot(cert: Certificate, base_url: Optional[str] = None) -> CertificateSnapshot:
    return CertificateSnapshot(
        certificate_id=cert.id,
        code=cert.code,
        status=cert.status,
        student_name=cert.student.name,
        student_email=cert.student.email,
        course_title=cert.course.title,
        course_description=cert.course.description,
        issuer_name=cert.issued_by.name,
        issued_at=cert.issued_at,
        verification_url=codes.build_verification_url(base_url or settings.PUBLIC_BASE_URL, cert.code),
        revoked_at=cert.revoked_at,
        revocation_reason=cert.revocation_reason.value if cert.revocation_reason else None,
        revocation_notes=cert.revocation_notes,
    )


def certificate_filename(code: str, revoked: bool, ext: str = "pdf") -> str:
    return f"certificate-{code}{'-REVOKED' if revoked else ''}.{ext}"


def _fmt_date(value: Optional[dt.datetime]) -> str:
    return value.strftime("%d %b %Y") if value else ""


def render_certificate_pdf(snapshot: CertificateSnapshot) -> bytes:
    buf = io.BytesIO()
    page = landscape(A4)
    width, height = page
    c = canvas.Canvas(buf, pagesize=page)
    c.setTitle(f"Certificate {snapshot.code}")

    c.setStrokeColorRGB(0.1, 0.1, 0.1)
    c.setLineWidth(2)
    c.rect(20, 20, width - 40, height - 40)

    c.setFillColorRGB(0.1, 0.1, 0.1)
    c.setFont("Helvetica-Bold", 32)
    c.drawCentredString(width / 2, height - 100, "Certificate of Completion")

    lines = [
        ("Helvetica", 16, "This is to certify that"),
        ("Helvetica-Bold", 24, snapshot.student_name),
        ("Helvetica", 16, "has successfully completed the course"),
        ("Helvetica-Bold", 18, snapshot.course_title),
        ("Helvetica", 16, "on"),
        ("Helvetica", 16, _fmt_date(snapshot.issued_at)),
    ]
    y = height - 200
    for font, size, line in lines:
        c.setFont(font, size)
        c.drawCentredString(width / 2, y, line)
        y -= 30

    c.setFillColorRGB(0.3, 0.3, 0.3)
    c.setFont("Helvetica", 12)
    c.drawCentredString(width / 2, 100, f"Certificate Code: {snapshot.code}")
    c.drawCentredString(width / 2, 50, f"Issued by: {snapshot.issuer_name}")

    qr_png = codes.generate_qr(snapshot.verification_url)
    c.drawImage(ImageReader(io.BytesIO(qr_png)), width - 150, 50, width=100, height=100)

    if snapshot.is_revoked:
        c.saveState()
        c.setFillColorRGB(0.8, 0.1, 0.1)
        c.setFont("Helvetica-Bold", 72)
        c.translate(width / 2, height / 2)
        c.rotate(30)
        c.drawCentredString(0, 0, "REVOKED")
        c.restoreState()
        c.setFillColorRGB(0.8, 0.1, 0.1)
        c.setFont("Helvetica", 11)
        c.drawString(40, 40, f"Revoked on {_fmt_date(snapshot.revoked_at)}")

    c.showPage()
    c.save()
    return buf.getvalue()
