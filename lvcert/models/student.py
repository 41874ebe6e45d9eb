from enum import Enum
from typing import Optional, List
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, DateTime, Enum as SAEnum, func
from lvcert.db.base import Base

class StudentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    GRADUATED = "GRADUATED"
    SUSPENDED_VIOLATION = "SUSPENDED_VIOLATION"

class Student(Base):
    __tablename__ = "students"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str] = mapped_column(String(160), unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    # GRADUATED / SUSPENDED_VIOLATION só mudam via services.transitions
    status: Mapped[StudentStatus] = mapped_column(
        SAEnum(StudentStatus, name="student_status", native_enum=False, length=32),
        default=StudentStatus.ACTIVE,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    enrollments: Mapped[List["Enrollment"]] = relationship(back_populates="student")
