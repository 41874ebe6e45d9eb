# lvcert/services/issuance.py
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from lvcert.core.errors import ValidationFailed
from lvcert.crud.certificate import certificate_crud
from lvcert.models.admin import Admin
from lvcert.models.certificate import Certificate
from lvcert.services import notifications, rendering, transitions

logger = logging.getLogger(__name__)


def _require_id(field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailed.field(field, "must be an integer")
    if value < 1:
        raise ValidationFailed.field(field, "must be >= 1")
    return value


def _deliver(db: Session, certificate_id: int, provider: Optional[notifications.EmailProvider]) -> None:
    # pós-commit: falhas aqui não desfazem a emissão
    cert = certificate_crud.get_detailed(db, certificate_id)
    snapshot = rendering.build_snapshot(cert)

    pdf: Optional[bytes] = None
    try:
        pdf = rendering.render_certificate_pdf(snapshot)
    except Exception:
        logger.exception("Certificate %s issued but PDF rendering failed", snapshot.code)

    try:
        notifications.send_certificate_issued(snapshot, pdf, provider=provider)
    except Exception:
        logger.exception("Certificate %s issued but email to %s failed", snapshot.code, snapshot.student_email)


def issue_certificate(
    db: Session,
    *,
    student_id: Any,
    course_id: Any,
    actor: Admin,
    provider: Optional[notifications.EmailProvider] = None,
) -> Certificate:
    """
    Emite o certificado de conclusão de (aluno, curso).

    A emissão vale a partir do commit da transação; PDF e e-mail são efeitos
    colaterais "best effort" e só geram log em caso de erro.
    """
    request = transitions.IssuanceRequest(
        student_id=_require_id("student_id", student_id),
        course_id=_require_id("course_id", course_id),
    )
    cert = transitions.apply_transition(db, request, actor=actor)
    cert_id = cert.id
    try:
        _deliver(db, cert_id, provider)
    except Exception:
        logger.exception("Post-issuance delivery failed for certificate %s", cert_id)
    return certificate_crud.get_detailed(db, cert_id)
