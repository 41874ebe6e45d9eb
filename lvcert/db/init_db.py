# lvcert/db/init_db.py
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lvcert.core.config import settings
from lvcert.core.security_password import hash_password, unusable_password_hash
from lvcert.models.admin import Admin, AdminRole

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_NAME = "System"

def ensure_system_actor(db: Session) -> Admin:
    """
    Upsert idempotente do ator técnico usado nas entradas automáticas de
    auditoria (ex.: verificação pública). Seguro para chamar a cada startup.
    """
    actor = db.scalar(select(Admin).where(Admin.email == settings.SYSTEM_ACTOR_EMAIL))
    if actor:
        return actor

    actor = Admin(
        name=SYSTEM_ACTOR_NAME,
        email=settings.SYSTEM_ACTOR_EMAIL,
        hashed_password=unusable_password_hash(),
        role=AdminRole.SYSTEM,
    )
    db.add(actor)
    try:
        db.commit()
    except IntegrityError:
        # outro worker criou no mesmo instante
        db.rollback()
        actor = db.scalar(select(Admin).where(Admin.email == settings.SYSTEM_ACTOR_EMAIL))
        if actor is None:
            raise
        return actor
    db.refresh(actor)
    logger.info("System actor created (id=%s)", actor.id)
    return actor

def init_db(db: Session) -> None:
    ensure_system_actor(db)

    if settings.INITIAL_ADMIN_EMAIL and settings.INITIAL_ADMIN_PASSWORD:
        admin = db.scalar(select(Admin).where(Admin.email == settings.INITIAL_ADMIN_EMAIL.lower()))
        if not admin:
            db.add(Admin(
                name=settings.INITIAL_ADMIN_NAME,
                email=settings.INITIAL_ADMIN_EMAIL.lower(),
                hashed_password=hash_password(settings.INITIAL_ADMIN_PASSWORD),
                role=AdminRole.SUPER_ADMIN,
            ))
            db.commit()
            logger.info("Initial super admin %s created", settings.INITIAL_ADMIN_EMAIL)
