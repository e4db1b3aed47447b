# services/role_scope.py

from typing import Any, FrozenSet, List, Optional

from core.errors import Forbidden
from core.identity import require_role
from core.roles import FLOOR_ROLES, HOSTEL_ROLES
from core.store import Condition
from models.enums import Role
from models.identity import Identity
from models.issue import Issue
from services.issue_normalizer import first_present

FLOOR_FIELDS = ("floorId", "floor", "hostelDetails.floor")
HOSTEL_FIELDS = ("hostelId", "hostelDetails.hostelId", "hostel", "hostelDetails.hostel")


# -----------------------------------------------------
# Person field resolvers (legacy documents disagree)
# -----------------------------------------------------
def _nested(doc: dict, key: str) -> Any:
    details = doc.get("hostelDetails")
    return details.get(key) if isinstance(details, dict) else None


def person_floor(doc: dict) -> Optional[str]:
    """floorId -> floor -> hostelDetails.floor"""
    value = first_present(doc.get("floorId"), doc.get("floor"), _nested(doc, "floor"))
    return None if value is None else str(value)


def person_hostel(doc: dict) -> Optional[str]:
    """hostelId -> hostelDetails.hostelId -> hostel -> hostelDetails.hostel"""
    value = first_present(
        doc.get("hostelId"),
        _nested(doc, "hostelId"),
        doc.get("hostel"),
        _nested(doc, "hostel"),
    )
    return None if value is None else str(value)


# ============================================================
# Scope: predicate over persons + issue-level containment
# ============================================================
class Scope:
    """
    Built per request by `scope_for`; never cached.

    `floor_ids` / `hostel_id` / `person_id` describe what the scope admits
    so callers can push filters into store queries. A scope with none of
    them set admits everything (chief warden).
    """

    def __init__(
        self,
        role: Role,
        *,
        floor_ids: Optional[FrozenSet[str]] = None,
        hostel_id: Optional[str] = None,
        person_id: Optional[str] = None,
    ):
        self.role = role
        self.floor_ids = floor_ids
        self.hostel_id = hostel_id
        self.person_id = person_id

    @property
    def unrestricted(self) -> bool:
        return self.floor_ids is None and self.hostel_id is None and self.person_id is None

    def __call__(self, person: dict) -> bool:
        if self.person_id is not None:
            return self.person_id in (str(person.get("id")), str(person.get("uid")))
        if self.floor_ids is not None:
            return person_floor(person) in self.floor_ids
        if self.hostel_id is not None:
            return person_hostel(person) == self.hostel_id
        return True

    def admits_issue(self, issue: Issue) -> bool:
        """Containment on the normalized issue's own floor / hostel."""
        if self.person_id is not None:
            return self.person_id in (issue.student_id, issue.author_id)
        if self.floor_ids is not None:
            return issue.floor in self.floor_ids
        if self.hostel_id is not None:
            return issue.hostel == self.hostel_id
        return True

    def query_plans(self) -> List[List[Condition]]:
        """
        Store filters that together cover every person the predicate can
        admit (one query per field location). Results still go through the
        predicate; the plans only narrow what is fetched.
        """
        if self.person_id is not None:
            return [[("id", "==", self.person_id)], [("uid", "==", self.person_id)]]
        if self.floor_ids is not None:
            floors = sorted(self.floor_ids)
            return [[(field, "in", floors)] for field in FLOOR_FIELDS]
        if self.hostel_id is not None:
            return [[(field, "==", self.hostel_id)] for field in HOSTEL_FIELDS]
        return [[]]

    def admits_floor(self, floor_id: Optional[str]) -> bool:
        if self.floor_ids is None:
            return True
        return floor_id is not None and str(floor_id) in self.floor_ids

    def __repr__(self):
        return (
            f"Scope(role={self.role.value}, floors={sorted(self.floor_ids) if self.floor_ids else None}, "
            f"hostel={self.hostel_id}, person={self.person_id})"
        )


# ============================================================
# scope_for(identity) -> Scope
# ============================================================
def scope_for(identity: Identity) -> Scope:
    """
    Fails closed: staff with missing assignments get Forbidden rather than
    a predicate that silently matches nothing.
    """
    role = require_role(identity)

    if role == Role.chief_warden:
        return Scope(role)

    if role in HOSTEL_ROLES:
        hostel = identity.scope.assigned_hostel_id
        if not hostel:
            raise Forbidden("no hostel assigned")
        return Scope(role, hostel_id=str(hostel))

    if role in FLOOR_ROLES:
        floors = identity.scope.assigned_floor_ids
        if not floors:
            raise Forbidden("no floors assigned")
        return Scope(role, floor_ids=frozenset(str(f) for f in floors))

    return Scope(role, person_id=identity.id)
