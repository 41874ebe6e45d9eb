from enum import Enum
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Enum as SAEnum
from lvcert.db.base import Base

class CourseStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

class Course(Base):
    __tablename__ = "courses"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    status: Mapped[CourseStatus] = mapped_column(
        SAEnum(CourseStatus, name="course_status", native_enum=False, length=16),
        default=CourseStatus.ACTIVE,
    )
