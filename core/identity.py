# core/identity.py

"""
Identity resolution: bearer credential -> Identity (id, role, scope).

Credentials are verified by Supabase Auth (GoTrue). The role and the scope
attributes (assigned hostel / floors) are read from the admin-set
`app_metadata` claims only; when a staff member's claims carry no scope,
it is looked up on their staff profile document instead.
"""

import asyncio
from typing import Any, Callable, Optional, Tuple

from supabase import Client

from core.errors import NoRoleAssigned, Unauthenticated, UpstreamFailure
from core.logging_config import get_logger
from core.roles import FLOOR_ROLES, HOSTEL_ROLES, PROFILE_COLLECTIONS
from core.store import Document, DocumentStore
from core.supabase_client import get_supabase_client
from models.enums import Role
from models.identity import Identity, IdentityScope

log = get_logger("identity")


# ============================================================
# Profile lookup: stable id first, email as fallback
# ============================================================
async def locate_profile(
    store: DocumentStore,
    collection: str,
    identity_id: str,
    email: Optional[str],
) -> Optional[Document]:
    """
    Find a person document for an identity. First match wins:
      1. a document whose `uid` field is the identity id
      2. a document keyed by the identity id
      3. a document with the identity's email (accounts provisioned
         out-of-band never had their uid written back)
    """
    rows = await store.query(collection, [("uid", "==", identity_id)], limit=1)
    if rows:
        return rows[0]

    doc = await store.get(collection, identity_id)
    if doc:
        return doc

    if email:
        rows = await store.query(collection, [("email", "==", email)], limit=1)
        if rows:
            return rows[0]

    return None


# ============================================================
# Scope extraction helpers
# ============================================================
def _as_list(value: Any) -> list:
    if not value:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value if v]
    return [str(value)]


def scope_from_attributes(attrs: dict) -> IdentityScope:
    """Reads assigned hostel / floors from claims or a staff document."""
    hostel = attrs.get("assignedHostelId") or attrs.get("assignedHostel")
    if not hostel:
        hostels = _as_list(attrs.get("assignedHostels"))
        hostel = hostels[0] if hostels else None

    floors = _as_list(attrs.get("assignedFloorIds") or attrs.get("assignedFloors"))

    return IdentityScope(
        assigned_hostel_id=str(hostel) if hostel else None,
        assigned_floor_ids=set(floors),
    )


def _scope_missing(role: Optional[Role], scope: IdentityScope) -> bool:
    if role in HOSTEL_ROLES:
        return not scope.assigned_hostel_id
    if role in FLOOR_ROLES:
        return not scope.assigned_floor_ids
    return False


# ============================================================
# Identity Resolver
# ============================================================
class IdentityResolver:
    def __init__(
        self,
        store: DocumentStore,
        client_factory: Callable[[], Optional[Client]] = get_supabase_client,
    ):
        self.store = store
        self._client_factory = client_factory

    def _auth(self):
        client = self._client_factory()
        if client is None:
            raise UpstreamFailure("Identity provider not configured")
        return client.auth

    # -------------------------------------------------
    # verify(token) -> (subject_id, claims)
    # -------------------------------------------------
    async def verify(self, token: Optional[str]) -> Tuple[str, dict]:
        if not token or not token.strip():
            raise Unauthenticated()

        auth = self._auth()
        try:
            resp = await asyncio.to_thread(auth.get_user, token)
        except Exception as e:
            log.warning(f"Credential rejected by identity provider: {e}")
            raise Unauthenticated() from e

        user = getattr(resp, "user", None)
        if user is None or not getattr(user, "id", None):
            raise Unauthenticated()

        # role and scope only from app_metadata; user_metadata is user-editable
        # and supplies display fields only
        claims = dict(getattr(user, "app_metadata", None) or {})
        profile = getattr(user, "user_metadata", None) or {}
        claims["email"] = getattr(user, "email", None)
        claims["displayName"] = profile.get("full_name") or profile.get("name")
        claims["photoUrl"] = profile.get("avatar_url") or profile.get("picture")
        return user.id, claims

    # -------------------------------------------------
    # get_profile(subject_id)
    # -------------------------------------------------
    async def get_profile(self, subject_id: str) -> dict:
        auth = self._auth()
        try:
            resp = await asyncio.to_thread(auth.admin.get_user_by_id, subject_id)
        except Exception as e:
            log.error(f"Profile lookup failed for {subject_id}: {e}")
            raise UpstreamFailure("Profile lookup failed") from e

        user = getattr(resp, "user", None)
        metadata = (getattr(user, "user_metadata", None) or {}) if user else {}
        return {
            "email": getattr(user, "email", None) if user else None,
            "displayName": metadata.get("full_name") or metadata.get("name"),
            "photoUrl": metadata.get("avatar_url") or metadata.get("picture"),
        }

    # -------------------------------------------------
    # resolve(token) -> Identity
    # -------------------------------------------------
    async def resolve(self, token: Optional[str]) -> Identity:
        subject_id, claims = await self.verify(token)

        role = Role.parse(claims.get("role"))
        if claims.get("role") and role is None:
            log.warning(f"Unknown role claim '{claims.get('role')}' for {subject_id}")

        scope = scope_from_attributes(claims)

        if _scope_missing(role, scope):
            staff_doc = await locate_profile(
                self.store,
                PROFILE_COLLECTIONS[role],
                subject_id,
                claims.get("email"),
            )
            if staff_doc:
                scope = scope_from_attributes(staff_doc)

        return Identity(
            id=subject_id,
            email=claims.get("email"),
            display_name=claims.get("displayName"),
            photo_url=claims.get("photoUrl"),
            role=role,
            scope=scope,
        )


def require_role(identity: Identity) -> Role:
    """Verified identities without a role are an authorization failure (403)."""
    if identity.role is None:
        raise NoRoleAssigned()
    return identity.role
