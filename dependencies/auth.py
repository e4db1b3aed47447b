from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.context import AppContext, get_context
from core.errors import Unauthenticated
from core.identity import require_role
from models.identity import Identity


# auto_error=False: a missing header must surface as 401, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


# ============================================================
# AUTH DECODING (Supabase: validates JWT + resolves role/scope)
# ============================================================
async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ctx: AppContext = Depends(get_context),
) -> Identity:
    """Verified identity; the role may still be missing."""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    return await ctx.identity.resolve(credentials.credentials)


async def get_current_user(identity: Identity = Depends(get_identity)) -> Identity:
    """Verified identity WITH a role (403 NoRoleAssigned otherwise)."""
    require_role(identity)
    return identity


# ============================================================
# PERMISSION CHECK (DELEGATES TO permission_helpers)
# ============================================================
def requires_permission(permission: str):
    """
    Thin wrapper so routes can still import from dependencies.auth.
    Real RBAC logic lives in core.permission_helpers.
    """
    from core.permission_helpers import requires_permission as new_checker
    return new_checker(permission)

