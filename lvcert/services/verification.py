# lvcert/services/verification.py
"""
Verificação pública de certificados pelo código.

Somente leitura sobre o certificado. Toda tentativa, válida ou não, gera uma
entrada de auditoria atribuída ao ator do sistema (não a um admin).
"""
from __future__ import annotations

import datetime as dt
import logging
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from lvcert.core.config import settings
from lvcert.core.errors import NotFound
from lvcert.crud.certificate import certificate_crud
from lvcert.db.init_db import ensure_system_actor
from lvcert.models.certificate import Certificate, CertificateStatus
from lvcert.schemas.certificate import VerificationResult, VerifiedCertificate
from lvcert.services import activity, codes

logger = logging.getLogger(__name__)


class VerificationOutcome(str, Enum):
    VALID = "VALID"
    INVALID = "INVALID"
    NOT_FOUND = "NOT_FOUND"
    MALFORMED = "MALFORMED"


def _record(db: Session, *, code: str, outcome: VerificationOutcome,
            cert: Optional[Certificate] = None) -> None:
    system = ensure_system_actor(db)
    activity.log_activity(
        db,
        actor_id=system.id,
        action=activity.ACTION_VERIFY,
        entity=activity.ENTITY_CERTIFICATE,
        entity_id=cert.id if cert is not None else None,
        details={
            "code": code,
            "outcome": outcome,
            "status": cert.status if cert is not None else None,
            "verifiedAt": dt.datetime.now(dt.timezone.utc),
        },
    )
    db.commit()


def _to_public(cert: Certificate) -> VerifiedCertificate:
    revoked = cert.status == CertificateStatus.REVOKED
    expose_reason = revoked and settings.VERIFY_EXPOSE_REVOCATION_REASON
    return VerifiedCertificate(
        code=cert.code,
        status=cert.status,
        student_name=cert.student.name,
        course_title=cert.course.title,
        course_description=None if revoked else cert.course.description,
        issued_at=cert.issued_at,
        issued_by=None if revoked else cert.issued_by.name,
        revoked_at=cert.revoked_at if revoked else None,
        revocation_reason=cert.revocation_reason if expose_reason else None,
        revocation_notes=cert.revocation_notes if expose_reason else None,
    )


def verify_certificate(db: Session, code: str) -> VerificationResult:
    normalized = codes.normalize_code(code)
    if not codes.is_valid_code(normalized):
        # formato inválido nunca casa com certificado: mesmo 404 do código inexistente
        _record(db, code=normalized, outcome=VerificationOutcome.MALFORMED)
        raise NotFound("certificate", normalized, message="Certificate not found")

    cert = certificate_crud.get_by_code(db, normalized)
    if cert is None:
        _record(db, code=normalized, outcome=VerificationOutcome.NOT_FOUND)
        raise NotFound("certificate", normalized, message="Certificate not found")

    if cert.status == CertificateStatus.ACTIVE:
        result = VerificationResult(is_valid=True, message="Certificate is valid", certificate=_to_public(cert))
    elif cert.status == CertificateStatus.REVOKED:
        result = VerificationResult(
            is_valid=False, message="This certificate has been revoked", certificate=_to_public(cert),
        )
    else:
        result = VerificationResult(
            is_valid=False, message=f"This certificate is {cert.status.value.lower()}",
            certificate=_to_public(cert),
        )

    _record(
        db, code=normalized, cert=cert,
        outcome=VerificationOutcome.VALID if result.is_valid else VerificationOutcome.INVALID,
    )
    logger.info("Certificate %s verified: %s", normalized, "valid" if result.is_valid else cert.status.value)
    return result
