from typing import Optional

from fastapi import Depends

from dependencies.auth import get_current_user
from core.errors import Forbidden
from core.permissions import ROLE_PERMISSIONS
from models.enums import Role
from models.identity import Identity


# -----------------------------------------------------
# Effective permissions for a role
# -----------------------------------------------------
def get_effective_permissions(role: Optional[Role]) -> set:
    if role is None:
        return set()
    return set(ROLE_PERMISSIONS.get(Role(role).value, []))


# -----------------------------------------------------
# Policy: can(role, action, resource)
# -----------------------------------------------------
def can(role: Optional[Role], action: str, resource: str) -> bool:
    """
    can(Role.floor_warden, "read", "students") -> True
    can(Role.student, "run", "search")         -> False
    """
    effective = get_effective_permissions(role)

    # Wildcard grants everything
    if "*" in effective:
        return True

    return f"{resource}:{action}" in effective


def has_permission(identity: Identity, permission: str) -> bool:
    resource, _, action = permission.partition(":")
    return can(identity.role, action, resource)


def require_permission(identity: Identity, permission: str) -> None:
    if not has_permission(identity, permission):
        raise Forbidden(f"Insufficient permissions: '{permission}' required")


# -----------------------------------------------------
# FastAPI dependency wrapper
# -----------------------------------------------------
def requires_permission(permission: str):
    """
    Usage:
        @router.get("", dependencies=[Depends(requires_permission("students:read"))])
    """

    def dependency(current_user: Identity = Depends(get_current_user)):
        require_permission(current_user, permission)
        return current_user

    return dependency
