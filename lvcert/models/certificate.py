from enum import Enum
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import ForeignKey, String, Text, DateTime, Index, Enum as SAEnum, text
from lvcert.db.base import Base

class CertificateStatus(str, Enum):
    ACTIVE = "ACTIVE"
    REVOKED = "REVOKED"
    EXPIRED = "EXPIRED"  # legado, fora do fluxo principal

class RevocationReason(str, Enum):
    ADMINISTRATIVE_ERROR = "ADMINISTRATIVE_ERROR"
    MISUSE_VIOLATION = "MISUSE_VIOLATION"
    ACADEMIC_MISCONDUCT = "ACADEMIC_MISCONDUCT"
    POLICY_VIOLATION = "POLICY_VIOLATION"

class Certificate(Base):
    __tablename__ = "certificates"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(16), unique=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), index=True)
    enrollment_id: Mapped[Optional[int]] = mapped_column(ForeignKey("enrollments.id"), nullable=True)
    status: Mapped[CertificateStatus] = mapped_column(
        SAEnum(CertificateStatus, name="certificate_status", native_enum=False, length=16),
        default=CertificateStatus.ACTIVE,
    )
    issued_by_id: Mapped[int] = mapped_column(ForeignKey("admins.id"))
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("admins.id"), nullable=True)
    revocation_reason: Mapped[Optional[RevocationReason]] = mapped_column(
        SAEnum(RevocationReason, name="revocation_reason", native_enum=False, length=32),
        nullable=True,
    )
    revocation_notes: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)

    student = relationship("Student")
    course = relationship("Course")
    issued_by = relationship("Admin", foreign_keys=[issued_by_id])
    revoked_by = relationship("Admin", foreign_keys=[revoked_by_id])

    # no máximo um certificado ACTIVE por (aluno, curso)
    __table_args__ = (
        Index(
            "uq_certificates_active_student_course",
            "student_id", "course_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )
