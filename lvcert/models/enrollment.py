from enum import Enum
from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import ForeignKey, DateTime, Index, Enum as SAEnum, func, text
from lvcert.db.base import Base

class EnrollmentStatus(str, Enum):
    ENROLLED = "ENROLLED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    TERMINATED_VIOLATION = "TERMINATED_VIOLATION"

class Enrollment(Base):
    __tablename__ = "enrollments"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), index=True)
    status: Mapped[EnrollmentStatus] = mapped_column(
        SAEnum(EnrollmentStatus, name="enrollment_status", native_enum=False, length=32),
        default=EnrollmentStatus.ENROLLED,
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    student = relationship("Student", back_populates="enrollments")
    course = relationship("Course")

    # no máximo uma matrícula não cancelada por (aluno, curso)
    __table_args__ = (
        Index(
            "uq_enrollments_open_student_course",
            "student_id", "course_id",
            unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
            sqlite_where=text("status <> 'CANCELLED'"),
        ),
    )
