# lvcert/models/__init__.py
# Carrega módulos para registrar tabelas no metadata:
from lvcert.models.admin import Admin, AdminRole  # noqa: F401
from lvcert.models.student import Student, StudentStatus  # noqa: F401
from lvcert.models.course import Course, CourseStatus  # noqa: F401
from lvcert.models.enrollment import Enrollment, EnrollmentStatus  # noqa: F401
from lvcert.models.certificate import Certificate, CertificateStatus, RevocationReason  # noqa: F401
from lvcert.models.activity_log import ActivityLog  # noqa: F401
