# services/directory.py

import math
from typing import List, Optional

from core import store as collections
from core.config import settings
from core.errors import Forbidden, InvalidInput
from core.identity import locate_profile, require_role, scope_from_attributes
from core.logging_config import get_logger
from core.permission_helpers import require_permission
from core.roles import FLOOR_ROLES, HOSTEL_ROLES, STAFF_COLLECTIONS
from core.store import Document, DocumentStore
from models.enums import Role
from models.identity import Identity
from services.aggregation import fetch_scoped, person_summary
from services.role_scope import Scope, scope_for

log = get_logger("directory")

# Response key per staff role
STAFF_KEYS = {
    Role.supervisor: "supervisors",
    Role.hostel_warden: "hostelWardens",
    Role.floor_warden: "floorWardens",
    Role.floor_attendant: "floorAttendants",
}


def by_name(doc: Document) -> str:
    return str(doc.get("fullName") or doc.get("name") or "").lower()


class DirectoryService:
    def __init__(self, store: DocumentStore):
        self.store = store

    # ============================================================
    # Students (paginated)
    # ============================================================
    async def list_students(
        self,
        identity: Identity,
        floor_id: Optional[str] = None,
        hostel_id: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> dict:
        require_role(identity)
        require_permission(identity, "students:read")
        scope = scope_for(identity)

        page = max(page or 1, 1)
        limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_ISSUE_LIMIT)
        offset = (page - 1) * limit

        if floor_id and not scope.admits_floor(floor_id):
            raise Forbidden(f"Floor {floor_id} is outside your assignment")
        if hostel_id and scope.hostel_id and hostel_id != scope.hostel_id:
            raise Forbidden(f"Hostel {hostel_id} is outside your assignment")

        if scope.unrestricted and not floor_id and not hostel_id:
            # chief warden, no filter: let the store paginate
            total = await self.store.count(collections.STUDENTS)
            students = await self.store.query(
                collections.STUDENTS,
                order_by="fullName",
                limit=limit,
                offset=offset,
            )
        else:
            if floor_id:
                narrowed = Scope(scope.role, floor_ids=frozenset({str(floor_id)}))
            elif hostel_id:
                narrowed = Scope(scope.role, hostel_id=str(hostel_id))
            else:
                narrowed = scope

            matched = await fetch_scoped(self.store, collections.STUDENTS, narrowed)
            matched = sorted((d for d in matched if scope(d)), key=by_name)
            total = len(matched)
            students = matched[offset:offset + limit]

        return {
            "students": [person_summary(s) for s in students],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "totalPages": math.ceil(total / limit) if total else 0,
            },
        }

    # ============================================================
    # Roommates
    # ============================================================
    async def list_roommates(self, identity: Identity, hostel_id: Optional[str], room_id: Optional[str]) -> List[dict]:
        role = require_role(identity)

        if not hostel_id:
            raise InvalidInput("Missing required field: hostelId")
        if not room_id:
            raise InvalidInput("Missing required field: roomId")

        if role == Role.student:
            own = await locate_profile(self.store, collections.STUDENTS, identity.id, identity.email)
            details = (own or {}).get("hostelDetails") or {}
            if str(details.get("hostelId")) != hostel_id or str(details.get("room_id")) != room_id:
                raise Forbidden("You can only view your own roommates")
            scope = None
        else:
            require_permission(identity, "students:read")
            scope = scope_for(identity)

        docs = await self.store.query(
            collections.STUDENTS,
            [("hostelDetails.hostelId", "==", hostel_id), ("hostelDetails.room_id", "==", room_id)],
        )

        roommates = []
        for doc in docs:
            if identity.id in (str(doc.get("id")), str(doc.get("uid"))):
                continue
            if scope is not None and not scope(doc):
                continue
            roommates.append(person_summary(doc))
        return roommates

    # ============================================================
    # Staff
    # ============================================================
    async def list_staff(
        self,
        identity: Identity,
        staff_role: Optional[str],
        floor_ids: Optional[List[str]] = None,
        hostel_id: Optional[str] = None,
    ) -> dict:
        require_role(identity)
        require_permission(identity, "staff:read")

        if not staff_role:
            raise InvalidInput("Missing required field: role")
        role = Role.parse(staff_role)
        if role not in STAFF_COLLECTIONS:
            raise InvalidInput(f"Invalid staff role '{staff_role}'. Allowed: {[r.value for r in STAFF_COLLECTIONS]}")

        scope = scope_for(identity)
        floors = {str(f) for f in (floor_ids or []) if f}
        if scope.floor_ids is not None:
            floors = (floors & scope.floor_ids) if floors else set(scope.floor_ids)
            if not floors:
                raise Forbidden("Requested floors are outside your assignment")
        if scope.hostel_id is not None:
            if hostel_id and hostel_id != scope.hostel_id:
                raise Forbidden(f"Hostel {hostel_id} is outside your assignment")
            hostel_id = scope.hostel_id

        docs = await self.store.query(STAFF_COLLECTIONS[role], order_by="fullName")

        staff = []
        for doc in docs:
            assigned = scope_from_attributes(doc)
            if floors and role in FLOOR_ROLES and not (assigned.assigned_floor_ids & floors):
                continue
            if hostel_id and (role in HOSTEL_ROLES or scope.hostel_id) and assigned.assigned_hostel_id != hostel_id:
                continue
            staff.append(doc)

        log.info(f"{identity.id} listed {len(staff)} {role.value} record(s)")
        return {STAFF_KEYS[role]: staff}
