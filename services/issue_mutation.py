# services/issue_mutation.py

import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from core import store as collections
from core.errors import Forbidden, HostelError, InvalidInput, NotFound
from core.identity import locate_profile, require_role
from core.logging_config import get_logger
from core.permission_helpers import require_permission
from core.roles import is_staff
from core.store import Document, DocumentStore
from models.enums import IssueStatus, IssueType, Role, SourceKind
from models.identity import Identity
from models.issue import HostelDetails, Issue
from services.aggregation import fetch_scoped
from services.issue_normalizer import EMBEDDED_ARRAYS, normalize
from services.role_scope import Scope, scope_for

log = get_logger("mutation")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_issue_id() -> str:
    ms = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"{ms}-{uuid.uuid4().hex[:6]}"


# -----------------------------------------------------
# Locate an embedded entry inside one person document
# -----------------------------------------------------
def find_embedded(doc: Document, issue_id: str) -> Optional[Tuple[str, int, dict, SourceKind]]:
    for field, kind in EMBEDDED_ARRAYS:
        entries = doc.get(field)
        if not isinstance(entries, list):
            continue
        for index, entry in enumerate(entries):
            if isinstance(entry, dict) and str(entry.get("id")) == issue_id:
                return field, index, entry, kind
    return None


def solved_patch(entry: dict, solved: bool) -> dict:
    """Both legacy flags are written so older readers agree with `status`."""
    return {
        **entry,
        "solved": solved,
        "isSolved": solved,
        "status": (IssueStatus.resolved if solved else IssueStatus.open).value,
        "completeDate": utc_now_iso() if solved else None,
    }


# ============================================================
# Issue Mutation Service
# ============================================================
class IssueMutationService:
    def __init__(self, store: DocumentStore):
        self.store = store

    # ============================================================
    # submit_issue
    # ============================================================
    async def submit_issue(
        self,
        identity: Identity,
        content: Optional[str],
        issue_type: Optional[str],
        category: Optional[str] = None,
        hostel_details: Optional[HostelDetails] = None,
    ) -> Issue:
        if is_staff(identity.role):
            raise Forbidden("Only students can submit issues")
        if identity.has_role:
            require_permission(identity, "issues:create")

        if not content or not content.strip():
            raise InvalidInput("Missing required field: content")
        if not issue_type:
            raise InvalidInput("Missing required field: type")

        parsed_type = IssueType.parse(issue_type)
        if parsed_type is None:
            raise InvalidInput(f"Invalid type '{issue_type}'. Allowed: {IssueType.list()}")

        category = (category or "").strip() or None
        if parsed_type == IssueType.maintenance and not category:
            raise InvalidInput("Missing required field: category")
        if parsed_type != IssueType.maintenance:
            category = None

        student = await self._ensure_student(identity)

        details = hostel_details.model_dump(by_alias=True, exclude_none=True) if hostel_details else {}
        raw = {
            "id": new_issue_id(),
            "type": parsed_type.value,
            "message": content.strip(),
            "timestamp": utc_now_iso(),
            "authorId": identity.id,
            "category": category,
            "solved": False,
            "hostelDetails": details or student.get("hostelDetails") or {},
        }
        issue = normalize(raw, SourceKind.embedded_issue, student)
        record = {**issue.as_record(), "isSolved": False, "hostelDetails": raw["hostelDetails"]}

        await self.store.array_union(collections.STUDENTS, student["id"], "issues", [record])
        await self._index(issue.id, student["id"])

        log.info(f"Issue {issue.id} ({parsed_type.value}) submitted by {identity.id}")
        return issue

    async def _ensure_student(self, identity: Identity) -> Document:
        """Existing record by uid / id / email, else a new one keyed by the identity id."""
        student = await locate_profile(self.store, collections.STUDENTS, identity.id, identity.email)
        if student is not None:
            return student

        fallback_name = (identity.email or "").split("@")[0] or "Student"
        doc = {
            "uid": identity.id,
            "email": identity.email,
            "fullName": identity.display_name or fallback_name,
            "role": Role.student.value,
            "createdAt": utc_now_iso(),
            "issues": [],
        }
        log.info(f"Creating student record for {identity.id}")
        return await self.store.set(collections.STUDENTS, identity.id, doc)

    async def _index(self, issue_id: str, student_id: str) -> None:
        try:
            await self.store.set(collections.ISSUE_INDEX, issue_id, {"studentId": student_id})
        except HostelError as e:
            # the scan fallback in set_solved still finds the issue
            log.warning(f"Could not index issue {issue_id}: {e.detail}")

    # ============================================================
    # set_solved
    # ============================================================
    async def set_solved(self, identity: Identity, issue_id: Optional[str], solved: Optional[bool]) -> dict:
        require_role(identity)

        if not issue_id or not str(issue_id).strip():
            raise InvalidInput("Missing required field: issueId")
        if solved is None:
            raise InvalidInput("Missing required field: solved")

        issue_id = str(issue_id).strip()
        solved = bool(solved)
        scope = scope_for(identity)

        if identity.role == Role.student:
            student = await locate_profile(self.store, collections.STUDENTS, identity.id, identity.email)
            candidates = [student] if student else []
            scope = Scope(Role.student, person_id=str(student["id"])) if student else scope
        else:
            indexed = await self._indexed_parent(issue_id, scope)
            if indexed is not None and await self._apply_embedded(indexed, issue_id, solved, scope):
                return self._ack(issue_id, solved)
            candidates = None

        # scan scoped candidates, first match wins
        if candidates is None:
            candidates = await fetch_scoped(self.store, collections.STUDENTS, scope)

        for doc in candidates:
            if await self._apply_embedded(doc, issue_id, solved, scope):
                if identity.role != Role.student:
                    await self._index(issue_id, doc["id"])
                return self._ack(issue_id, solved)

        if await self._apply_standalone(issue_id, solved, scope):
            return self._ack(issue_id, solved)

        raise NotFound(f"Issue {issue_id} not found")

    async def _indexed_parent(self, issue_id: str, scope: Scope) -> Optional[Document]:
        try:
            entry = await self.store.get(collections.ISSUE_INDEX, issue_id)
            if not entry or not entry.get("studentId"):
                return None
            parent = await self.store.get(collections.STUDENTS, str(entry["studentId"]))
        except HostelError as e:
            log.warning(f"Issue index lookup failed for {issue_id}, scanning instead: {e.detail}")
            return None

        if parent is None or not scope(parent):
            return None
        return parent

    def _check_allowed(self, issue: Issue, scope: Scope) -> bool:
        if not scope.admits_issue(issue):
            return False
        if scope.role == Role.floor_attendant and issue.type != IssueType.maintenance:
            raise Forbidden("Floor attendants can only update maintenance issues")
        return True

    async def _apply_embedded(self, doc: Document, issue_id: str, solved: bool, scope: Scope) -> bool:
        found = find_embedded(doc, issue_id)
        if found is None:
            return False

        field, _, entry, kind = found
        current = normalize(entry, kind, doc)
        if not self._check_allowed(current, scope):
            return False

        if current.solved == solved and bool(entry.get("solved")) == bool(entry.get("isSolved")):
            log.info(f"Issue {issue_id} already solved={solved}; nothing to write")
            return True

        # only this entry is rewritten; entries appended since `doc` was read survive
        await self.store.replace_in_array(
            collections.STUDENTS, doc["id"], field, issue_id, solved_patch(entry, solved)
        )

        log.info(f"Issue {issue_id} in {doc['id']}.{field} set solved={solved}")
        return True

    async def _apply_standalone(self, issue_id: str, solved: bool, scope: Scope) -> bool:
        try:
            row = await self.store.get(collections.ISSUES, issue_id)
        except HostelError as e:
            log.warning(f"Standalone issue lookup failed for {issue_id}: {e.detail}")
            return False
        if row is None:
            return False

        parent = None
        owner = row.get("studentId") or row.get("userId")
        if owner:
            parent = await self.store.get(collections.STUDENTS, str(owner))
            if parent is None:
                matches = await self.store.query(collections.STUDENTS, [("uid", "==", str(owner))], limit=1)
                parent = matches[0] if matches else None

        if not scope.unrestricted and (parent is None or not scope(parent)):
            return False
        current = normalize(row, SourceKind.standalone, parent)
        if not self._check_allowed(current, scope):
            return False
        if current.solved == solved and bool(row.get("solved")) == bool(row.get("isSolved")):
            return True

        patch = solved_patch(row, solved)
        await self.store.update(
            collections.ISSUES,
            issue_id,
            {k: patch[k] for k in ("solved", "isSolved", "status", "completeDate")},
        )
        log.info(f"Standalone issue {issue_id} set solved={solved}")
        return True

    @staticmethod
    def _ack(issue_id: str, solved: bool) -> dict:
        return {
            "success": True,
            "issueId": issue_id,
            "solved": solved,
            "status": (IssueStatus.resolved if solved else IssueStatus.open).value,
        }
