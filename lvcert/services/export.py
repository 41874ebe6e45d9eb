# lvcert/services/export.py
from __future__ import annotations

import io
import json
import logging
import zipfile
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from lvcert.core.config import settings
from lvcert.core.errors import NotFound, ValidationFailed
from lvcert.crud.certificate import certificate_crud
from lvcert.models.admin import Admin
from lvcert.services import activity, rendering

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "certificates.zip"
MANIFEST_NAME = "manifest.json"
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True)
class RenderedDocument:
    filename: str
    content: bytes
    media_type: str = "application/pdf"


def _write_zip(entries: List[Tuple[str, bytes]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, data in entries:
            info = zipfile.ZipInfo(name, date_time=ZIP_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(info, data)
    return buffer.getvalue()


def _manifest_entry(snapshot: rendering.CertificateSnapshot, document: Optional[str],
                    error: Optional[str]) -> Dict[str, Any]:
    return {
        "code": snapshot.code,
        "studentName": snapshot.student_name,
        "courseTitle": snapshot.course_title,
        "status": snapshot.status.value,
        "issuedAt": snapshot.issued_at.isoformat() if snapshot.issued_at else None,
        "revokedAt": snapshot.revoked_at.isoformat() if snapshot.revoked_at else None,
        "revocationReason": snapshot.revocation_reason,
        "revocationNotes": snapshot.revocation_notes,
        "document": document,
        "error": error,
    }


def download_certificate(db: Session, *, certificate_id: int, actor: Admin) -> RenderedDocument:
    cert = certificate_crud.get_detailed(db, certificate_id)
    if cert is None:
        raise NotFound("certificate", certificate_id)

    snapshot = rendering.build_snapshot(cert)
    pdf = rendering.render_certificate_pdf(snapshot)

    activity.log_activity(
        db,
        actor_id=actor.id,
        action=activity.ACTION_DOWNLOAD,
        entity=activity.ENTITY_CERTIFICATE,
        entity_id=cert.id,
        details={
            "certificateId": cert.id,
            "certificateCode": cert.code,
            "studentId": cert.student_id,
            "courseId": cert.course_id,
            "status": cert.status,
        },
    )
    db.commit()
    return RenderedDocument(filename=rendering.certificate_filename(snapshot.code, snapshot.is_revoked), content=pdf)


def download_certificates(db: Session, *, certificate_ids: Sequence[int], actor: Admin) -> bytes:
    """
    Empacota os PDFs pedidos + ``manifest.json`` num único zip.

    Erro ao renderizar um certificado não derruba o lote: o item fica no
    manifesto com ``document = null`` e a mensagem em ``error``.
    """
    ids = list(dict.fromkeys(certificate_ids))
    if not ids:
        raise ValidationFailed.field("certificate_ids", "must not be empty")
    if len(ids) > settings.BULK_MAX_ITEMS:
        raise ValidationFailed.field("certificate_ids", f"at most {settings.BULK_MAX_ITEMS} items per request")

    certificates = certificate_crud.get_many_detailed(db, ids)
    if not certificates:
        raise NotFound("certificate", ids, message="No certificates found to download")

    entries: List[Tuple[str, bytes]] = []
    manifest: List[Dict[str, Any]] = []
    rendered = 0
    for cert in certificates:
        snapshot = rendering.build_snapshot(cert)
        filename = rendering.certificate_filename(snapshot.code, snapshot.is_revoked)
        try:
            pdf = rendering.render_certificate_pdf(snapshot)
        except Exception as exc:
            logger.exception("Bulk download: certificate %s could not be rendered", snapshot.code)
            manifest.append(_manifest_entry(snapshot, None, str(exc) or exc.__class__.__name__))
            continue
        entries.append((filename, pdf))
        manifest.append(_manifest_entry(snapshot, filename, None))
        rendered += 1

    entries.append((MANIFEST_NAME, json.dumps(manifest, indent=2).encode("utf-8")))
    archive = _write_zip(entries)

    activity.log_activity(
        db,
        actor_id=actor.id,
        action=activity.ACTION_BULK_DOWNLOAD,
        entity=activity.ENTITY_CERTIFICATE,
        entity_id=activity.join_ids(c.id for c in certificates),
        details={
            "count": len(certificates),
            "rendered": rendered,
            "revokedCount": sum(1 for m in manifest if m["status"] == "REVOKED"),
            "missing": [i for i in ids if i not in {c.id for c in certificates}],
        },
    )
    db.commit()
    return archive
