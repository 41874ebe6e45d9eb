# tests/conftest.py
import os

# precisa vir antes de qualquer import de lvcert (settings lê o ambiente no import)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("EMAIL_PROVIDER", "noop")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import lvcert.models  # noqa: F401
from lvcert.core.config import settings
from lvcert.core.security_password import hash_password
from lvcert.core.tokens import create_access_token
from lvcert.db.base import Base
from lvcert.db.session import get_db
from lvcert.main import api
from lvcert.models.admin import Admin, AdminRole
from lvcert.models.course import Course, CourseStatus
from lvcert.models.enrollment import Enrollment, EnrollmentStatus
from lvcert.models.student import Student, StudentStatus


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_admin(db_session):
    def _make(email="admin@example.com", role=AdminRole.ADMIN, name="Ada Admin"):
        admin = Admin(name=name, email=email, hashed_password=hash_password("s3cret-pass"), role=role)
        db_session.add(admin)
        db_session.commit()
        return admin
    return _make


@pytest.fixture()
def admin(make_admin):
    return make_admin()


@pytest.fixture()
def make_student(db_session):
    counter = {"n": 0}

    def _make(status=StudentStatus.ACTIVE, name=None):
        counter["n"] += 1
        n = counter["n"]
        student = Student(name=name or f"Student {n}", email=f"student{n}@example.com", status=status)
        db_session.add(student)
        db_session.commit()
        return student
    return _make


@pytest.fixture()
def make_course(db_session):
    counter = {"n": 0}

    def _make(status=CourseStatus.ACTIVE, title=None):
        counter["n"] += 1
        course = Course(
            title=title or f"Course {counter['n']}",
            description="Hands-on course",
            status=status,
        )
        db_session.add(course)
        db_session.commit()
        return course
    return _make


@pytest.fixture()
def make_enrollment(db_session):
    def _make(student, course, status=EnrollmentStatus.ENROLLED):
        enr = Enrollment(student_id=student.id, course_id=course.id, status=status)
        db_session.add(enr)
        db_session.commit()
        return enr
    return _make


@pytest.fixture()
def enrolled(make_student, make_course, make_enrollment):
    """Aluno ACTIVE matriculado (ENROLLED) num curso ACTIVE."""
    student = make_student()
    course = make_course()
    enrollment = make_enrollment(student, course)
    return student, course, enrollment


@pytest.fixture()
def client(db_session):
    def _override_get_db():
        yield db_session

    api.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(api, raise_server_exceptions=False)
    finally:
        api.dependency_overrides.clear()


@pytest.fixture()
def auth_headers(admin):
    token = create_access_token(sub=admin.email, role=admin.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def restore_settings():
    """Devolve os campos de settings alterados no teste."""
    saved = settings.model_dump()
    yield settings
    for key, value in saved.items():
        setattr(settings, key, value)
