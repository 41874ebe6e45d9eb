# lvcert/services/transitions.py
"""
Motor de consistência: Certificate, Enrollment e Student mudam juntos.

Cada transição (emissão ou revogação) roda numa única transação limitada no
tempo. Pré-condições são checadas dentro dela, com as linhas travadas sempre
na mesma ordem (Student -> Enrollment -> Certificate) para evitar deadlock
entre transações concorrentes do mesmo aluno. A entrada de auditoria é
gravada antes do commit: ou vai tudo, ou não vai nada.
"""
from __future__ import annotations

import datetime as dt
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from lvcert.core.config import settings
from lvcert.core.errors import NotFound, PreconditionFailed, TransientError
from lvcert.models.admin import Admin
from lvcert.models.certificate import Certificate, CertificateStatus, RevocationReason
from lvcert.models.course import Course, CourseStatus
from lvcert.models.enrollment import Enrollment, EnrollmentStatus
from lvcert.models.student import Student, StudentStatus
from lvcert.services import activity, codes, rules

logger = logging.getLogger(__name__)


def _now_tz() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class IssuanceRequest:
    student_id: int
    course_id: int


@dataclass(frozen=True)
class RevocationRequest:
    certificate_id: int
    reason: RevocationReason
    notes: Optional[str] = None


TransitionRequest = Union[IssuanceRequest, RevocationRequest]


# -------------------------- transação --------------------------

class TransitionDeadline:
    def __init__(self, timeout: float):
        self.timeout = timeout
        self.started = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def check(self, stage: str) -> None:
        if self.elapsed > self.timeout:
            raise TransientError(
                f"Certificate transaction exceeded its {self.timeout:g}s budget",
                details={"stage": stage, "timeout_seconds": self.timeout},
            )


def _apply_statement_timeout(db: Session, timeout: float) -> None:
    if db.get_bind().dialect.name != "postgresql":
        return
    ms = max(int(timeout * 1000), 1)
    # SET não aceita bind parameter; ms é int
    db.execute(text(f"SET LOCAL statement_timeout = {ms}"))
    db.execute(text(f"SET LOCAL lock_timeout = {ms}"))


@contextmanager
def transition_scope(db: Session, *, timeout: Optional[float] = None) -> Iterator[TransitionDeadline]:
    """
    Fronteira transacional de uma transição: commit no fim do bloco,
    rollback em qualquer erro. Estourar o prazo ou falha de banco vira
    ``TransientError`` (o chamador pode repetir a operação inteira).
    """
    deadline = TransitionDeadline(settings.TX_TIMEOUT_SECONDS if timeout is None else timeout)
    try:
        _apply_statement_timeout(db, deadline.timeout)
        yield deadline
        deadline.check("commit")
        db.commit()
    except OperationalError as exc:
        db.rollback()
        raise TransientError(
            "Database busy or unavailable, retry the operation",
            details={"error": str(getattr(exc, "orig", exc))},
        ) from exc
    except Exception:
        db.rollback()
        raise


# -------------------------- leituras com lock --------------------------

def _lock_student(db: Session, student_id: int) -> Optional[Student]:
    return db.execute(
        select(Student)
        .where(Student.id == student_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def _lock_open_enrollment(db: Session, student_id: int, course_id: int) -> Optional[Enrollment]:
    return db.execute(
        select(Enrollment)
        .where(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
            Enrollment.status != EnrollmentStatus.CANCELLED,
        )
        .order_by(Enrollment.id.desc())
        .limit(1)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def _lock_certificate_enrollment(db: Session, cert: Certificate) -> Optional[Enrollment]:
    if cert.enrollment_id is not None:
        enr = db.execute(
            select(Enrollment)
            .where(Enrollment.id == cert.enrollment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if enr is not None and enr.status != EnrollmentStatus.CANCELLED:
            return enr
        if enr is not None:
            # matrícula cancelada fora daqui: vale a rematrícula, se houver
            reopened = _lock_open_enrollment(db, cert.student_id, cert.course_id)
            if reopened is None:
                raise PreconditionFailed(
                    "enrollment_cancelled",
                    "The enrollment of this certificate was cancelled",
                    certificate_id=cert.id, enrollment_id=enr.id,
                )
            return reopened
    # certificados antigos sem enrollment_id: liga pelo par (aluno, curso)
    return _lock_open_enrollment(db, cert.student_id, cert.course_id)


def _count_other_open_enrollments(db: Session, student_id: int, course_id: int) -> int:
    return db.scalar(
        select(func.count(Enrollment.id)).where(
            Enrollment.student_id == student_id,
            Enrollment.status == EnrollmentStatus.ENROLLED,
            Enrollment.course_id != course_id,
        )
    ) or 0


# -------------------------- emissão --------------------------

def _issue(db: Session, req: IssuanceRequest, actor_id: int, deadline: TransitionDeadline) -> Certificate:
    student = _lock_student(db, req.student_id)
    if student is None:
        raise NotFound("student", req.student_id)
    if student.status == StudentStatus.GRADUATED:
        raise PreconditionFailed(
            "student_already_graduated", "Student is already graduated", student_id=student.id,
        )
    if student.status != StudentStatus.ACTIVE:
        raise PreconditionFailed(
            "student_not_active", "Student is not active",
            student_id=student.id, status=student.status.value,
        )

    course = db.get(Course, req.course_id)
    if course is None:
        raise NotFound("course", req.course_id)
    if course.status != CourseStatus.ACTIVE:
        raise PreconditionFailed("course_not_active", "Course is not active", course_id=course.id)

    enrollment = _lock_open_enrollment(db, student.id, course.id)
    if enrollment is None:
        raise PreconditionFailed(
            "not_enrolled", "Student is not enrolled in this course",
            student_id=student.id, course_id=course.id,
        )
    if enrollment.status == EnrollmentStatus.COMPLETED:
        raise PreconditionFailed(
            "enrollment_completed", "Student has already completed this course",
            enrollment_id=enrollment.id,
        )
    if enrollment.status != EnrollmentStatus.ENROLLED:
        raise PreconditionFailed(
            "enrollment_not_enrolled", "Enrollment is not in ENROLLED status",
            enrollment_id=enrollment.id, status=enrollment.status.value,
        )

    existing = db.execute(
        select(Certificate.id)
        .where(
            Certificate.student_id == student.id,
            Certificate.course_id == course.id,
            Certificate.status == CertificateStatus.ACTIVE,
        )
        .with_for_update()
    ).scalar_one_or_none()
    if existing is not None:
        raise PreconditionFailed(
            "certificate_already_active",
            "Certificate already exists for this student and course",
            certificate_id=existing,
        )
    deadline.check("preconditions")

    cert = Certificate(
        code=codes.new_certificate_code(),
        student_id=student.id,
        course_id=course.id,
        enrollment_id=enrollment.id,
        status=CertificateStatus.ACTIVE,
        issued_by_id=actor_id,
        issued_at=_now_tz(),
    )
    db.add(cert)
    enrollment.status = EnrollmentStatus.COMPLETED
    other_open = _count_other_open_enrollments(db, student.id, course.id)
    student.status = rules.graduation_status_after_issuance(other_open, settings.GRADUATION_POLICY)
    # colisão de código (unique) aparece aqui
    db.flush()

    activity.log_activity(
        db,
        actor_id=actor_id,
        action=activity.ACTION_GENERATE,
        entity=activity.ENTITY_CERTIFICATE,
        entity_id=cert.id,
        details={
            "certificateCode": cert.code,
            "studentId": student.id,
            "courseId": course.id,
            "enrollmentId": enrollment.id,
            "enrollmentStatus": enrollment.status,
            "studentStatus": student.status,
            "graduationPolicy": settings.GRADUATION_POLICY,
        },
    )
    return cert


def _conflict_kind(exc: IntegrityError) -> Optional[str]:
    # nomes do índice (postgres) ou colunas (sqlite) na mensagem do driver
    text_ = str(getattr(exc, "orig", exc))
    if "ix_certificates_code" in text_ or "certificates.code" in text_:
        return "code"
    if "uq_certificates_active_student_course" in text_ or \
            "certificates.student_id, certificates.course_id" in text_:
        return "active"
    return None


def _run_issuance(db: Session, req: IssuanceRequest, actor_id: int) -> Certificate:
    attempts = max(1, settings.CODE_MAX_ATTEMPTS)
    collisions = 0
    active_race_seen = False
    while collisions < attempts:
        try:
            with transition_scope(db) as deadline:
                return _issue(db, req, actor_id, deadline)
        except IntegrityError as exc:
            kind = _conflict_kind(exc)
            if kind == "active" and not active_race_seen:
                # outra transação emitiu antes: a próxima volta cai na pré-condição
                active_race_seen = True
                logger.info("Concurrent issuance for student %s course %s, re-checking",
                            req.student_id, req.course_id)
                continue
            if kind != "code":
                raise
            collisions += 1
            logger.warning(
                "Certificate code collision (attempt %s/%s): %s",
                collisions, attempts, getattr(exc, "orig", exc),
            )
    raise TransientError(
        f"Could not allocate a unique certificate code after {attempts} attempts",
        details={"attempts": attempts},
    )


# -------------------------- revogação --------------------------

def _revoke(db: Session, req: RevocationRequest, actor: Admin, deadline: TransitionDeadline) -> Certificate:
    cert = db.get(Certificate, req.certificate_id)
    if cert is None:
        raise NotFound("certificate", req.certificate_id)

    student = _lock_student(db, cert.student_id)
    if student is None:
        raise NotFound("student", cert.student_id)
    enrollment = _lock_certificate_enrollment(db, cert)
    # relê com lock: outra transação pode ter revogado no meio tempo
    cert = db.execute(
        select(Certificate)
        .where(Certificate.id == req.certificate_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one()
    if cert.status != CertificateStatus.ACTIVE:
        raise PreconditionFailed(
            "certificate_not_active", f"Certificate is already {cert.status.value}",
            certificate_id=cert.id, status=cert.status.value,
        )

    effect = rules.revocation_effect(req.reason)
    deadline.check("preconditions")

    now = _now_tz()
    cert.status = CertificateStatus.REVOKED
    cert.revoked_at = now
    cert.revoked_by_id = actor.id
    cert.revocation_reason = req.reason
    cert.revocation_notes = req.notes

    if enrollment is not None:
        enrollment.status = effect.enrollment_status
        enrollment.end_date = None if effect.reinstate else now
    else:
        logger.warning("Certificate %s has no enrollment to update", cert.id)

    other_open = _count_other_open_enrollments(db, student.id, cert.course_id)
    student.status = effect.student_status(other_open)
    db.flush()

    activity.log_activity(
        db,
        actor_id=actor.id,
        action=activity.ACTION_REVOKE,
        entity=activity.ENTITY_CERTIFICATE,
        entity_id=cert.id,
        details={
            "certificateId": cert.id,
            "certificateCode": cert.code,
            "studentId": student.id,
            "courseId": cert.course_id,
            "reason": req.reason,
            "notes": req.notes,
            "revokedBy": {"id": actor.id, "name": actor.name, "email": actor.email},
            "studentStatus": student.status,
            "enrollmentStatus": enrollment.status if enrollment is not None else None,
        },
    )
    return cert


# -------------------------- entrada --------------------------

def apply_transition(db: Session, request: TransitionRequest, *, actor: Admin) -> Certificate:
    """
    Executa uma transição de certificado de forma atômica e devolve o
    certificado já commitado.

    Erros: ``NotFound``, ``PreconditionFailed`` (nada mudou) ou
    ``TransientError`` (prazo/banco; seguro repetir).
    """
    actor_id = actor.id
    if isinstance(request, IssuanceRequest):
        cert = _run_issuance(db, request, actor_id)
        logger.info("Certificate %s issued by actor %s", cert.code, actor_id)
        return cert
    if isinstance(request, RevocationRequest):
        with transition_scope(db) as deadline:
            cert = _revoke(db, request, actor, deadline)
        logger.info("Certificate %s revoked (%s) by actor %s", cert.code, request.reason.value, actor_id)
        return cert
    raise TypeError(f"Unsupported transition request: {type(request).__name__}")
