# lvcert/api/v1/activities.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lvcert.api.deps import get_db
from lvcert.api.permissions import CERTIFICATE_MANAGERS, require_roles
from lvcert.crud.activity import activity_crud
from lvcert.models.admin import Admin
from lvcert.schemas.certificate import ActivityOut, PersonRef

router = APIRouter()


@router.get("", response_model=List[ActivityOut])
def list_activities(
    entity: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    _: Admin = Depends(require_roles(CERTIFICATE_MANAGERS)),
):
    rows = activity_crud.list_filtered(
        db, entity=entity, action=action, entity_id=entity_id, skip=skip, limit=limit,
    )
    return [
        ActivityOut(
            id=a.id,
            action=a.action,
            entity=a.entity,
            entity_id=a.entity_id,
            details=a.details or {},
            actor=PersonRef(id=a.actor.id, name=a.actor.name, email=a.actor.email),
            created_at=a.created_at,
        )
        for a in rows
    ]
