# lvcert/api/permissions.py
from typing import Callable, Iterable

from fastapi import Depends, HTTPException, status

from lvcert.api.deps import get_current_admin
from lvcert.models.admin import Admin, AdminRole

ROLE_NAMES = {
    AdminRole.SUPER_ADMIN: "Super Admin",
    AdminRole.ADMIN: "Admin",
    AdminRole.SYSTEM: "System",
}

# emitir, revogar, baixar e listar
CERTIFICATE_MANAGERS = (AdminRole.ADMIN, AdminRole.SUPER_ADMIN)


def require_roles(allowed: Iterable[AdminRole]) -> Callable[[Admin], Admin]:
    """
    Use: Depends(require_roles(CERTIFICATE_MANAGERS))
    Bloqueia quem não tiver uma das roles permitidas.
    """
    allowed_set = set(allowed)

    def _checker(admin: Admin = Depends(get_current_admin)) -> Admin:
        if admin.role not in allowed_set:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied for role '{ROLE_NAMES.get(admin.role, 'Unknown')}'.",
            )
        return admin

    return _checker
