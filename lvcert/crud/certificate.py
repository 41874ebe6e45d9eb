from typing import List, Optional, Sequence
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload
from lvcert.crud.base import CRUDBase
from lvcert.models.certificate import Certificate, CertificateStatus

_DETAIL = (
    selectinload(Certificate.student),
    selectinload(Certificate.course),
    selectinload(Certificate.issued_by),
    selectinload(Certificate.revoked_by),
)

class CRUDCertificate(CRUDBase[Certificate]):
    def get_by_code(self, db: Session, code: str) -> Optional[Certificate]:
        return db.execute(
            select(Certificate).where(Certificate.code == code).options(*_DETAIL)
        ).scalar_one_or_none()

    def get_detailed(self, db: Session, id: int) -> Optional[Certificate]:
        return db.execute(
            select(Certificate).where(Certificate.id == id).options(*_DETAIL)
        ).scalar_one_or_none()

    def get_many_detailed(self, db: Session, ids: Sequence[int]) -> List[Certificate]:
        if not ids:
            return []
        rows = db.execute(
            select(Certificate).where(Certificate.id.in_(list(ids))).options(*_DETAIL)
        ).scalars().all()
        # mantém a ordem pedida pelo cliente
        by_id = {c.id: c for c in rows}
        return [by_id[i] for i in ids if i in by_id]

    def list_filtered(
        self,
        db: Session,
        *,
        status: Optional[CertificateStatus] = None,
        student_id: Optional[int] = None,
        course_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Certificate]:
        stmt = select(Certificate).options(*_DETAIL)
        if status is not None:
            stmt = stmt.where(Certificate.status == status)
        if student_id is not None:
            stmt = stmt.where(Certificate.student_id == student_id)
        if course_id is not None:
            stmt = stmt.where(Certificate.course_id == course_id)
        stmt = stmt.order_by(Certificate.issued_at.desc(), Certificate.id.desc())
        return self._page(db, stmt, skip, limit)

certificate_crud = CRUDCertificate(Certificate)
