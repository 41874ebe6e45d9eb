# lvcert/services/revocation.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lvcert.core.config import settings
from lvcert.core.errors import CertificateServiceError, ValidationFailed
from lvcert.models.admin import Admin
from lvcert.models.certificate import Certificate, RevocationReason
from lvcert.services import activity, transitions

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 2000


@dataclass
class BulkItemResult:
    certificate_id: Any
    ok: bool
    error_code: Optional[str] = None
    message: Optional[str] = None


@dataclass
class BulkResult:
    revoked_count: int = 0
    total_count: int = 0
    items: List[BulkItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        # sucesso != "tudo revogado"; só lote zerado é falha
        return self.revoked_count > 0

    @property
    def complete(self) -> bool:
        return self.revoked_count == self.total_count

    @property
    def revoked_ids(self) -> List[Any]:
        return [i.certificate_id for i in self.items if i.ok]

    @property
    def failed(self) -> List[BulkItemResult]:
        return [i for i in self.items if not i.ok]


def _coerce_reason(reason: Any) -> RevocationReason:
    if isinstance(reason, RevocationReason):
        return reason
    try:
        return RevocationReason(reason)
    except ValueError:
        allowed = ", ".join(r.value for r in RevocationReason)
        raise ValidationFailed.field("reason", f"must be one of: {allowed}") from None


def _clean_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise ValidationFailed.field("notes", "must be a string")
    notes = notes.strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationFailed.field("notes", f"must be at most {MAX_NOTES_LENGTH} characters")
    return notes or None


def _check_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationFailed.field("certificate_id", "must be a positive integer")
    return value


def _unique(ids: Iterable[Any]) -> List[Any]:
    seen = set()
    out = []
    for i in ids:
        if i in seen:
            continue
        seen.add(i)
        out.append(i)
    return out


def revoke_certificate(
    db: Session,
    *,
    certificate_id: Any,
    reason: Any,
    notes: Optional[str] = None,
    actor: Admin,
) -> Certificate:
    request = transitions.RevocationRequest(
        certificate_id=_check_id(certificate_id),
        reason=_coerce_reason(reason),
        notes=_clean_notes(notes),
    )
    return transitions.apply_transition(db, request, actor=actor)


def revoke_certificates(
    db: Session,
    *,
    certificate_ids: Iterable[Any],
    reason: Any,
    notes: Optional[str] = None,
    actor: Admin,
) -> BulkResult:
    """
    Revoga uma lista de certificados, um por vez, cada um na sua transação.

    Sequencial de propósito: dois certificados do mesmo aluno travam a mesma
    linha de Student. Falha de um item é registrada e o laço segue.
    """
    reason = _coerce_reason(reason)
    notes = _clean_notes(notes)
    ids = _unique(certificate_ids)
    if not ids:
        raise ValidationFailed.field("certificate_ids", "must not be empty")
    if len(ids) > settings.BULK_MAX_ITEMS:
        raise ValidationFailed.field("certificate_ids", f"at most {settings.BULK_MAX_ITEMS} items per request")

    actor_id = actor.id
    result = BulkResult(total_count=len(ids))
    for raw_id in ids:
        try:
            request = transitions.RevocationRequest(
                certificate_id=_check_id(raw_id), reason=reason, notes=notes,
            )
            transitions.apply_transition(db, request, actor=actor)
        except CertificateServiceError as exc:
            logger.warning("Bulk revoke: certificate %s skipped (%s: %s)", raw_id, exc.code, exc.message)
            result.items.append(BulkItemResult(raw_id, ok=False, error_code=exc.code, message=exc.message))
            continue
        except Exception as exc:
            logger.exception("Bulk revoke: certificate %s failed", raw_id)
            result.items.append(BulkItemResult(raw_id, ok=False, error_code="INTERNAL_ERROR", message=str(exc)))
            continue
        result.revoked_count += 1
        result.items.append(BulkItemResult(raw_id, ok=True))

    if result.succeeded:
        _log_summary(db, actor_id, result, reason, notes)
    else:
        logger.error("Bulk revoke by actor %s revoked none of %s certificates", actor_id, result.total_count)
    return result


def _log_summary(db: Session, actor_id: int, result: BulkResult, reason: RevocationReason,
                 notes: Optional[str]) -> None:
    # cada item já tem sua entrada REVOKE_CERTIFICATE; este é só o resumo do lote
    try:
        activity.log_activity(
            db,
            actor_id=actor_id,
            action=activity.ACTION_BULK_REVOKE,
            entity=activity.ENTITY_CERTIFICATE,
            entity_id=activity.join_ids(result.revoked_ids),
            details={
                "count": result.revoked_count,
                "requested": result.total_count,
                "reason": reason,
                "notes": notes,
                "failed": [{"certificateId": i.certificate_id, "code": i.error_code} for i in result.failed],
                "message": f"Revoked {result.revoked_count} certificates",
            },
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Bulk revoke summary could not be written")
