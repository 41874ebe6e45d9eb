# lvcert/api/deps.py
from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from lvcert.db.session import get_db
from lvcert.models.admin import Admin, AdminRole
from lvcert.core.tokens import decode_access

__all__ = ["get_db", "get_bearer_token", "get_current_admin"]

# ----------------------------------------------------------------------
# Lê o Bearer do header Authorization (sem usar OAuth2PasswordBearer)
# ----------------------------------------------------------------------
def get_bearer_token(authorization: str = Header(None, alias="Authorization")) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return parts[1]

# ----------------------------------------------------------------------
# Admin autenticado: sub do token = e-mail do admin
# ----------------------------------------------------------------------
def get_current_admin(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> Admin:
    payload = decode_access(token)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    email = str(payload.get("sub") or "").strip().lower()

    admin = db.execute(select(Admin).where(Admin.email == email)).scalar_one_or_none()
    if not admin:
        raise HTTPException(status_code=401, detail="Admin not found")
    # ator de sistema só assina auditoria, nunca autentica
    if admin.role == AdminRole.SYSTEM:
        raise HTTPException(status_code=401, detail="Admin not found")
    return admin
