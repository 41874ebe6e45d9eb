# lvcert/api/v1/certificates.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.orm import Session

from lvcert.api.deps import get_db
from lvcert.api.permissions import CERTIFICATE_MANAGERS, require_roles
from lvcert.core.errors import BulkOperationFailed, NotFound
from lvcert.crud.certificate import certificate_crud
from lvcert.models.admin import Admin
from lvcert.models.certificate import Certificate, CertificateStatus
from lvcert.schemas.certificate import (
    BulkDownloadRequest,
    BulkItemOut,
    BulkRevokeOut,
    BulkRevokeRequest,
    CertificateOut,
    CourseRef,
    IssueRequest,
    PersonRef,
    RevokeRequest,
)
from lvcert.services import export, issuance, revocation

router = APIRouter()

manager = require_roles(CERTIFICATE_MANAGERS)


def _person(p) -> Optional[PersonRef]:
    if p is None:
        return None
    return PersonRef(id=p.id, name=p.name, email=p.email)


def _to_out(c: Certificate) -> CertificateOut:
    return CertificateOut(
        id=c.id,
        code=c.code,
        status=c.status,
        student=_person(c.student),
        course=CourseRef(id=c.course.id, title=c.course.title),
        issued_by=_person(c.issued_by),
        issued_at=c.issued_at,
        revoked_at=c.revoked_at,
        revoked_by=_person(c.revoked_by),
        revocation_reason=c.revocation_reason,
        revocation_notes=c.revocation_notes,
    )


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}

# -------------------------- leitura --------------------------

@router.get("", response_model=List[CertificateOut])
def list_certificates(
    status: Optional[CertificateStatus] = Query(None),
    student_id: Optional[int] = Query(None, ge=1),
    course_id: Optional[int] = Query(None, ge=1),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    _: Admin = Depends(manager),
):
    rows = certificate_crud.list_filtered(
        db, status=status, student_id=student_id, course_id=course_id, skip=skip, limit=limit,
    )
    return [_to_out(c) for c in rows]


@router.get("/{certificate_id}", response_model=CertificateOut)
def get_certificate(
    certificate_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    _: Admin = Depends(manager),
):
    cert = certificate_crud.get_detailed(db, certificate_id)
    if cert is None:
        raise NotFound("certificate", certificate_id)
    return _to_out(cert)

# -------------------------- emissão --------------------------

@router.post("", response_model=CertificateOut, status_code=201)
def issue_one(
    body: IssueRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(manager),
):
    cert = issuance.issue_certificate(db, student_id=body.student_id, course_id=body.course_id, actor=admin)
    return _to_out(cert)

# -------------------------- revogação --------------------------

@router.post("/bulk-revoke", response_model=BulkRevokeOut)
def bulk_revoke(
    body: BulkRevokeRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(manager),
):
    result = revocation.revoke_certificates(
        db, certificate_ids=body.certificate_ids, reason=body.reason, notes=body.notes, actor=admin,
    )
    items = [
        BulkItemOut(certificate_id=i.certificate_id, ok=i.ok, error_code=i.error_code, message=i.message)
        for i in result.items
    ]
    if not result.succeeded:
        raise BulkOperationFailed(
            "No certificates were revoked",
            revoked_count=result.revoked_count,
            total_count=result.total_count,
            items=[i.model_dump() for i in items],
        )
    return BulkRevokeOut(
        message=f"Revoked {result.revoked_count} of {result.total_count} certificates",
        revoked_count=result.revoked_count,
        total_count=result.total_count,
        items=items,
    )


@router.post("/{certificate_id}/revoke", response_model=CertificateOut)
def revoke_one(
    body: RevokeRequest,
    certificate_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    admin: Admin = Depends(manager),
):
    cert = revocation.revoke_certificate(
        db, certificate_id=certificate_id, reason=body.reason, notes=body.notes, actor=admin,
    )
    return _to_out(certificate_crud.get_detailed(db, cert.id))

# -------------------------- download --------------------------

@router.post("/bulk-download")
def bulk_download(
    body: BulkDownloadRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(manager),
):
    archive = export.download_certificates(db, certificate_ids=body.certificate_ids, actor=admin)
    return Response(
        content=archive,
        media_type="application/zip",
        headers=_attachment(export.ARCHIVE_NAME),
    )


@router.get("/{certificate_id}/download")
def download_one(
    certificate_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    admin: Admin = Depends(manager),
):
    doc = export.download_certificate(db, certificate_id=certificate_id, actor=admin)
    return Response(content=doc.content, media_type=doc.media_type, headers=_attachment(doc.filename))
