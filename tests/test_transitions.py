# tests/test_transitions.py
import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError

from lvcert.core.errors import NotFound, PreconditionFailed, TransientError
from lvcert.models.activity_log import ActivityLog
from lvcert.models.admin import Admin, AdminRole
from lvcert.models.certificate import Certificate, CertificateStatus, RevocationReason
from lvcert.models.course import CourseStatus
from lvcert.models.enrollment import Enrollment, EnrollmentStatus
from lvcert.models.student import StudentStatus
from lvcert.services import activity, codes, transitions
from lvcert.services.transitions import IssuanceRequest, RevocationRequest, apply_transition


def _count(db, model, *where):
    return db.scalar(select(func.count()).select_from(model).where(*where))


def _issue(db, admin, student, course):
    return apply_transition(db, IssuanceRequest(student.id, course.id), actor=admin)


def _revoke(db, admin, cert, reason, notes=None):
    return apply_transition(db, RevocationRequest(cert.id, reason, notes), actor=admin)


# ----------------------------- emissão -----------------------------

def test_issue_updates_certificate_enrollment_and_student(db_session, admin, enrolled):
    student, course, enrollment = enrolled

    cert = _issue(db_session, admin, student, course)

    assert cert.status == CertificateStatus.ACTIVE
    assert codes.is_valid_code(cert.code)
    assert cert.enrollment_id == enrollment.id
    assert cert.issued_by_id == admin.id
    db_session.refresh(enrollment)
    db_session.refresh(student)
    assert enrollment.status == EnrollmentStatus.COMPLETED
    assert student.status == StudentStatus.GRADUATED

    log = db_session.scalars(select(ActivityLog).where(ActivityLog.action == activity.ACTION_GENERATE)).one()
    assert log.entity == activity.ENTITY_CERTIFICATE
    assert log.entity_id == str(cert.id)
    assert log.actor_id == admin.id
    assert log.details["certificateCode"] == cert.code
    assert log.details["studentStatus"] == "GRADUATED"


@pytest.mark.parametrize("student_status, rule", [
    (StudentStatus.GRADUATED, "student_already_graduated"),
    (StudentStatus.INACTIVE, "student_not_active"),
    (StudentStatus.SUSPENDED_VIOLATION, "student_not_active"),
])
def test_issue_requires_active_student(db_session, admin, make_student, make_course, make_enrollment,
                                       student_status, rule):
    student = make_student(status=student_status)
    course = make_course()
    make_enrollment(student, course)

    with pytest.raises(PreconditionFailed) as exc:
        _issue(db_session, admin, student, course)
    assert exc.value.rule == rule


def test_issue_requires_active_course(db_session, admin, make_student, make_course, make_enrollment):
    student = make_student()
    course = make_course(status=CourseStatus.INACTIVE)
    make_enrollment(student, course)

    with pytest.raises(PreconditionFailed) as exc:
        _issue(db_session, admin, student, course)
    assert exc.value.rule == "course_not_active"
    assert exc.value.message == "Course is not active"


@pytest.mark.parametrize("enrollment_status, rule", [
    (None, "not_enrolled"),
    (EnrollmentStatus.CANCELLED, "not_enrolled"),
    (EnrollmentStatus.COMPLETED, "enrollment_completed"),
    (EnrollmentStatus.TERMINATED_VIOLATION, "enrollment_not_enrolled"),
])
def test_issue_requires_enrolled_enrollment(db_session, admin, make_student, make_course, make_enrollment,
                                            enrollment_status, rule):
    student = make_student()
    course = make_course()
    if enrollment_status is not None:
        make_enrollment(student, course, status=enrollment_status)

    with pytest.raises(PreconditionFailed) as exc:
        _issue(db_session, admin, student, course)
    assert exc.value.rule == rule


def test_issue_unknown_student_or_course(db_session, admin, make_course, make_student):
    course = make_course()
    with pytest.raises(NotFound) as exc:
        apply_transition(db_session, IssuanceRequest(999, course.id), actor=admin)
    assert exc.value.entity == "student"

    student = make_student()
    with pytest.raises(NotFound) as exc:
        apply_transition(db_session, IssuanceRequest(student.id, 999), actor=admin)
    assert exc.value.entity == "course"


def test_failed_issue_changes_nothing(db_session, admin, make_student, make_course, make_enrollment):
    student = make_student()
    course = make_course(status=CourseStatus.INACTIVE)
    enrollment = make_enrollment(student, course)

    with pytest.raises(PreconditionFailed):
        _issue(db_session, admin, student, course)

    db_session.refresh(student)
    db_session.refresh(enrollment)
    assert student.status == StudentStatus.ACTIVE
    assert enrollment.status == EnrollmentStatus.ENROLLED
    assert _count(db_session, Certificate) == 0
    assert _count(db_session, ActivityLog) == 0


def test_at_most_one_active_certificate_per_student_course(db_session, admin, enrolled):
    student, course, enrollment = enrolled
    first = _issue(db_session, admin, student, course)

    # estado forçado: aluno e matrícula reabertos sem revogar o certificado
    student.status = StudentStatus.ACTIVE
    enrollment.status = EnrollmentStatus.ENROLLED
    db_session.commit()

    with pytest.raises(PreconditionFailed) as exc:
        _issue(db_session, admin, student, course)
    assert exc.value.rule == "certificate_already_active"
    assert exc.value.details["certificate_id"] == first.id
    assert _count(
        db_session, Certificate,
        Certificate.student_id == student.id, Certificate.status == CertificateStatus.ACTIVE,
    ) == 1


def test_issue_retries_on_code_collision(db_session, admin, make_student, make_course, make_enrollment,
                                         monkeypatch):
    course = make_course()
    first_student = make_student()
    make_enrollment(first_student, course)
    taken = _issue(db_session, admin, first_student, course).code

    student = make_student()
    make_enrollment(student, course)
    generated = iter([taken, "LV-ABCDE-FGHJK"])
    monkeypatch.setattr(codes, "new_certificate_code", lambda: next(generated))

    cert = _issue(db_session, admin, student, course)

    assert cert.code == "LV-ABCDE-FGHJK"
    assert _count(db_session, ActivityLog, ActivityLog.action == activity.ACTION_GENERATE) == 2


def test_issue_gives_up_after_max_code_attempts(db_session, admin, make_student, make_course, make_enrollment,
                                                monkeypatch, restore_settings):
    course = make_course()
    first_student = make_student()
    make_enrollment(first_student, course)
    taken = _issue(db_session, admin, first_student, course).code

    student = make_student()
    enrollment = make_enrollment(student, course)
    restore_settings.CODE_MAX_ATTEMPTS = 3
    monkeypatch.setattr(codes, "new_certificate_code", lambda: taken)

    with pytest.raises(TransientError) as exc:
        _issue(db_session, admin, student, course)
    assert exc.value.retryable is True
    assert exc.value.details == {"attempts": 3}

    db_session.refresh(enrollment)
    assert enrollment.status == EnrollmentStatus.ENROLLED
    assert _count(db_session, Certificate, Certificate.student_id == student.id) == 0


def test_issue_does_not_retry_permanent_integrity_errors(db_session, enrolled, monkeypatch):
    student, course, enrollment = enrolled
    db_session.execute(text("PRAGMA foreign_keys=ON"))
    db_session.commit()
    # ator nunca gravado: a FK issued_by_id falha em toda tentativa
    ghost = Admin(id=999, name="Ghost", email="ghost@example.com", hashed_password="x", role=AdminRole.ADMIN)
    calls = []
    real_code = codes.new_certificate_code
    monkeypatch.setattr(codes, "new_certificate_code", lambda: calls.append(1) or real_code())

    with pytest.raises(IntegrityError):
        apply_transition(db_session, IssuanceRequest(student.id, course.id), actor=ghost)

    assert len(calls) == 1
    db_session.refresh(enrollment)
    assert enrollment.status == EnrollmentStatus.ENROLLED
    assert _count(db_session, Certificate) == 0


def test_issue_rechecks_after_concurrent_active_insert(db_session, admin, enrolled, monkeypatch):
    student, course, _ = enrolled
    real_issue = transitions._issue
    state = {"raised": False}

    def racing_issue(db, req, actor_id, deadline):
        if not state["raised"]:
            state["raised"] = True
            raise IntegrityError(
                "INSERT INTO certificates", {},
                Exception("UNIQUE constraint failed: certificates.student_id, certificates.course_id"),
            )
        return real_issue(db, req, actor_id, deadline)

    monkeypatch.setattr(transitions, "_issue", racing_issue)

    cert = _issue(db_session, admin, student, course)
    assert cert.status == CertificateStatus.ACTIVE
    assert _count(db_session, Certificate) == 1


def test_transition_past_deadline_rolls_back(db_session, admin, enrolled, restore_settings):
    student, course, enrollment = enrolled
    restore_settings.TX_TIMEOUT_SECONDS = -1

    with pytest.raises(TransientError):
        _issue(db_session, admin, student, course)

    db_session.refresh(enrollment)
    assert enrollment.status == EnrollmentStatus.ENROLLED
    assert _count(db_session, Certificate) == 0
    assert _count(db_session, ActivityLog) == 0


def test_no_open_enrollments_policy_keeps_student_active(db_session, admin, make_student, make_course,
                                                         make_enrollment, restore_settings):
    restore_settings.GRADUATION_POLICY = "no_open_enrollments"
    student = make_student()
    course, other = make_course(), make_course()
    make_enrollment(student, course)
    make_enrollment(student, other)

    _issue(db_session, admin, student, course)
    db_session.refresh(student)
    assert student.status == StudentStatus.ACTIVE

    _issue(db_session, admin, student, other)
    db_session.refresh(student)
    assert student.status == StudentStatus.GRADUATED


# ----------------------------- revogação -----------------------------

def test_administrative_error_revocation_reinstates_student(db_session, admin, enrolled):
    student, course, enrollment = enrolled
    cert = _issue(db_session, admin, student, course)

    revoked = _revoke(db_session, admin, cert, RevocationReason.ADMINISTRATIVE_ERROR, "wrong course")

    assert revoked.status == CertificateStatus.REVOKED
    assert revoked.revoked_by_id == admin.id
    assert revoked.revoked_at is not None
    assert revoked.revocation_reason == RevocationReason.ADMINISTRATIVE_ERROR
    assert revoked.revocation_notes == "wrong course"
    db_session.refresh(student)
    db_session.refresh(enrollment)
    assert student.status == StudentStatus.ACTIVE
    assert enrollment.status == EnrollmentStatus.ENROLLED
    assert enrollment.end_date is None

    # pode ser reemitido depois da correção
    again = _issue(db_session, admin, student, course)
    assert again.id != cert.id
    assert again.status == CertificateStatus.ACTIVE


@pytest.mark.parametrize("reason", [
    RevocationReason.MISUSE_VIOLATION,
    RevocationReason.ACADEMIC_MISCONDUCT,
    RevocationReason.POLICY_VIOLATION,
])
def test_violation_revocation_suspends_student(db_session, admin, enrolled, reason):
    student, course, enrollment = enrolled
    cert = _issue(db_session, admin, student, course)

    _revoke(db_session, admin, cert, reason)

    db_session.refresh(student)
    db_session.refresh(enrollment)
    assert student.status == StudentStatus.SUSPENDED_VIOLATION
    assert enrollment.status == EnrollmentStatus.TERMINATED_VIOLATION
    assert enrollment.end_date is not None

    log = db_session.scalars(select(ActivityLog).where(ActivityLog.action == activity.ACTION_REVOKE)).one()
    assert log.details["reason"] == reason.value
    assert log.details["studentStatus"] == "SUSPENDED_VIOLATION"
    assert log.details["revokedBy"]["id"] == admin.id


def test_violation_with_other_open_enrollment_keeps_student_active(db_session, admin, make_student,
                                                                   make_course, make_enrollment):
    student = make_student()
    course, other = make_course(), make_course()
    make_enrollment(student, course)
    make_enrollment(student, other)
    cert = _issue(db_session, admin, student, course)

    _revoke(db_session, admin, cert, RevocationReason.MISUSE_VIOLATION)

    db_session.refresh(student)
    assert student.status == StudentStatus.ACTIVE


def test_revoking_twice_fails_without_second_audit_entry(db_session, admin, enrolled):
    student, course, _ = enrolled
    cert = _issue(db_session, admin, student, course)
    _revoke(db_session, admin, cert, RevocationReason.POLICY_VIOLATION)

    with pytest.raises(PreconditionFailed) as exc:
        _revoke(db_session, admin, cert, RevocationReason.ADMINISTRATIVE_ERROR)
    assert exc.value.rule == "certificate_not_active"

    db_session.refresh(student)
    assert student.status == StudentStatus.SUSPENDED_VIOLATION
    assert _count(db_session, ActivityLog, ActivityLog.action == activity.ACTION_REVOKE) == 1


def test_revoke_unknown_certificate(db_session, admin):
    with pytest.raises(NotFound):
        apply_transition(db_session, RevocationRequest(404, RevocationReason.POLICY_VIOLATION), actor=admin)


def test_unsupported_request_type(db_session, admin):
    with pytest.raises(TypeError):
        apply_transition(db_session, object(), actor=admin)


def test_revoke_uses_reenrollment_when_original_was_cancelled(db_session, admin, enrolled):
    student, course, enrollment = enrolled
    cert = _issue(db_session, admin, student, course)
    # cancelada pelo fluxo de matrículas, aluno matriculado de novo
    enrollment.status = EnrollmentStatus.CANCELLED
    db_session.commit()
    reenrolled = Enrollment(student_id=student.id, course_id=course.id, status=EnrollmentStatus.ENROLLED)
    db_session.add(reenrolled)
    db_session.commit()

    _revoke(db_session, admin, cert, RevocationReason.ADMINISTRATIVE_ERROR)

    db_session.refresh(enrollment)
    db_session.refresh(reenrolled)
    db_session.refresh(student)
    assert enrollment.status == EnrollmentStatus.CANCELLED
    assert reenrolled.status == EnrollmentStatus.ENROLLED
    assert student.status == StudentStatus.ACTIVE


def test_revoke_with_cancelled_enrollment_and_no_reenrollment(db_session, admin, enrolled):
    student, course, enrollment = enrolled
    cert = _issue(db_session, admin, student, course)
    enrollment.status = EnrollmentStatus.CANCELLED
    db_session.commit()

    with pytest.raises(PreconditionFailed) as exc:
        _revoke(db_session, admin, cert, RevocationReason.ADMINISTRATIVE_ERROR)
    assert exc.value.rule == "enrollment_cancelled"

    db_session.refresh(cert)
    assert cert.status == CertificateStatus.ACTIVE
    assert _count(db_session, ActivityLog, ActivityLog.action == activity.ACTION_REVOKE) == 0
