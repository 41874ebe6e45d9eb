from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload
from lvcert.crud.base import CRUDBase
from lvcert.models.activity_log import ActivityLog

class CRUDActivity(CRUDBase[ActivityLog]):
    def list_filtered(
        self,
        db: Session,
        *,
        entity: Optional[str] = None,
        action: Optional[str] = None,
        entity_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[ActivityLog]:
        stmt = select(ActivityLog).options(selectinload(ActivityLog.actor))
        if entity:
            stmt = stmt.where(ActivityLog.entity == entity)
        if action:
            stmt = stmt.where(ActivityLog.action == action)
        if entity_id:
            stmt = stmt.where(ActivityLog.entity_id == entity_id)
        stmt = stmt.order_by(ActivityLog.id.desc())
        return self._page(db, stmt, skip, limit)

activity_crud = CRUDActivity(ActivityLog)
