# lvcert/services/rules.py
"""
Regras de negócio nomeadas usadas pelo motor de transições.

Ficam isoladas aqui para que cada decisão de política seja testável sozinha,
sem abrir transação.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from lvcert.models.certificate import RevocationReason
from lvcert.models.enrollment import EnrollmentStatus
from lvcert.models.student import StudentStatus


# ------------------------- revogação -------------------------

@dataclass(frozen=True)
class RevocationEffect:
    enrollment_status: EnrollmentStatus
    # True: aluno volta ao curso (end_date limpo); False: matrícula encerrada agora
    reinstate: bool

    def student_status(self, other_open_enrollments: int) -> StudentStatus:
        if self.reinstate:
            return StudentStatus.ACTIVE
        if other_open_enrollments == 0:
            return StudentStatus.SUSPENDED_VIOLATION
        return StudentStatus.ACTIVE


_REINSTATE = RevocationEffect(enrollment_status=EnrollmentStatus.ENROLLED, reinstate=True)
_TERMINATE = RevocationEffect(enrollment_status=EnrollmentStatus.TERMINATED_VIOLATION, reinstate=False)


def revocation_effect(reason: RevocationReason) -> RevocationEffect:
    # todo novo motivo precisa entrar aqui explicitamente
    if reason is RevocationReason.ADMINISTRATIVE_ERROR:
        return _REINSTATE
    if reason is RevocationReason.MISUSE_VIOLATION:
        return _TERMINATE
    if reason is RevocationReason.ACADEMIC_MISCONDUCT:
        return _TERMINATE
    if reason is RevocationReason.POLICY_VIOLATION:
        return _TERMINATE
    raise ValueError(f"Unhandled revocation reason: {reason!r}")


# ------------------------- emissão -------------------------

class GraduationPolicy(str, Enum):
    # comportamento histórico: qualquer certificado forma o aluno
    UNCONDITIONAL = "unconditional"
    # só forma quando não sobra outra matrícula ENROLLED
    NO_OPEN_ENROLLMENTS = "no_open_enrollments"


def graduation_status_after_issuance(
    other_open_enrollments: int,
    policy: GraduationPolicy | str,
) -> StudentStatus:
    """
    Status do aluno depois que um certificado é emitido.

    ``other_open_enrollments`` conta as matrículas ENROLLED do aluno em
    outros cursos. A política padrão (UNCONDITIONAL) ignora esse número; ver
    DESIGN.md para a decisão pendente com a coordenação.
    """
    policy = GraduationPolicy(policy)
    if policy is GraduationPolicy.UNCONDITIONAL:
        return StudentStatus.GRADUATED
    if policy is GraduationPolicy.NO_OPEN_ENROLLMENTS:
        return StudentStatus.GRADUATED if other_open_enrollments == 0 else StudentStatus.ACTIVE
    raise ValueError(f"Unhandled graduation policy: {policy!r}")

