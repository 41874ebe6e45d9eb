# lvcert/services/activity.py
from __future__ import annotations

import enum
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from lvcert.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)

ENTITY_CERTIFICATE = "certificate"

ACTION_GENERATE = "GENERATE_CERTIFICATE"
ACTION_REVOKE = "REVOKE_CERTIFICATE"
ACTION_BULK_REVOKE = "BULK_REVOKE_CERTIFICATES"
ACTION_VERIFY = "VERIFY_CERTIFICATE"
ACTION_DOWNLOAD = "DOWNLOAD_CERTIFICATE"
ACTION_BULK_DOWNLOAD = "BULK_DOWNLOAD_CERTIFICATES"


def _serialize_value(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    return value


def join_ids(ids: Iterable[Any]) -> str:
    return ",".join(str(i) for i in ids)


def log_activity(
    db: Session,
    *,
    actor_id: int,
    action: str,
    entity: str,
    entity_id: Optional[Any],
    details: Optional[Dict[str, Any]] = None,
) -> ActivityLog:
    """
    Acrescenta uma entrada na trilha de auditoria dentro da transação corrente.

    Não faz commit: quem chama decide a fronteira, para que o registro e a
    mudança de estado sejam gravados juntos (ou nenhum dos dois).
    """
    entry = ActivityLog(
        actor_id=actor_id,
        action=action,
        entity=entity,
        entity_id=None if entity_id is None else str(entity_id),
        details=_serialize_value(details or {}),
    )
    db.add(entry)
    db.flush()
    logger.debug("activity %s %s:%s by actor %s", action, entity, entity_id, actor_id)
    return entry
