from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
from lvcert.models.certificate import CertificateStatus, RevocationReason

class PersonRef(BaseModel):
    id: int
    name: str
    email: Optional[str] = None

class CourseRef(BaseModel):
    id: int
    title: str

class CertificateOut(BaseModel):
    id: int
    code: str
    status: CertificateStatus
    student: PersonRef
    course: CourseRef
    issued_by: PersonRef
    issued_at: datetime
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[PersonRef] = None
    revocation_reason: Optional[RevocationReason] = None
    revocation_notes: Optional[str] = None

class IssueRequest(BaseModel):
    student_id: int = Field(ge=1)
    course_id: int = Field(ge=1)

class RevokeRequest(BaseModel):
    reason: RevocationReason
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("notes", mode="before")
    @classmethod
    def _strip_notes(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

class BulkRevokeRequest(RevokeRequest):
    certificate_ids: List[int] = Field(min_length=1)

class BulkDownloadRequest(BaseModel):
    certificate_ids: List[int] = Field(min_length=1)

class BulkItemOut(BaseModel):
    certificate_id: int
    ok: bool
    error_code: Optional[str] = None
    message: Optional[str] = None

class BulkRevokeOut(BaseModel):
    message: str
    revoked_count: int
    total_count: int
    items: List[BulkItemOut]

# -------------------- verificação pública --------------------

class VerifiedCertificate(BaseModel):
    code: str
    status: CertificateStatus
    student_name: str
    course_title: str
    course_description: Optional[str] = None
    issued_at: datetime
    issued_by: Optional[str] = None
    revoked_at: Optional[datetime] = None
    revocation_reason: Optional[RevocationReason] = None
    revocation_notes: Optional[str] = None

class VerificationResult(BaseModel):
    is_valid: bool
    message: str
    certificate: VerifiedCertificate

# -------------------- auditoria --------------------

class ActivityOut(BaseModel):
    id: int
    action: str
    entity: str
    entity_id: Optional[str] = None
    details: Dict[str, Any] = {}
    actor: PersonRef
    created_at: Optional[datetime] = None
