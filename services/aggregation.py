# services/aggregation.py

"""
Role-scoped aggregation: one identity in, one role-shaped payload out.

Every payload is rebuilt from the store on each call: scoped people are
fetched concurrently, their embedded issue arrays are flattened through the
normalizer, standalone issue rows are attached to the same people, and the
result is de-duplicated and sorted newest first.
"""

import asyncio
from typing import Awaitable, Dict, Iterable, List, Optional, Tuple

from core import store as collections
from core.config import settings
from core.errors import InvalidInput, NotFound, UpstreamFailure
from core.identity import locate_profile, require_role
from core.logging_config import get_logger
from core.roles import FLOOR_ROLES, HOSTEL_ROLES, PROFILE_COLLECTIONS, ROLE_LABELS
from core.store import Condition, Document, DocumentStore
from models.enums import IssueStatusFilter, IssueType, Role, SourceKind
from models.identity import Identity
from models.issue import Issue
from services.issue_normalizer import (
    EMBEDDED_ARRAYS,
    issue_counts,
    merge_issues,
    normalize,
    normalize_person_issues,
    sort_issues,
)
from services.role_scope import Scope, scope_for

log = get_logger("aggregation")

EMBEDDED_FIELDS = tuple(field for field, _ in EMBEDDED_ARRAYS)

# Fields withheld from the unauthenticated notice board
PRIVATE_ISSUE_FIELDS = ("authorId", "studentId", "parentId")


# -----------------------------------------------------
# Fan-out helpers
# -----------------------------------------------------
async def gather_partial(**named: Awaitable) -> Dict[str, object]:
    """
    Runs named sub-queries concurrently. A failed sub-query is logged and
    reported as None so the caller can degrade to partial data.
    """
    keys = list(named)
    results = await asyncio.gather(*named.values(), return_exceptions=True)

    out = {}
    for key, result in zip(keys, results):
        if isinstance(result, Exception):
            log.warning(f"Sub-query '{key}' failed, continuing without it: {result}")
            out[key] = None
        elif isinstance(result, BaseException):
            raise result
        else:
            out[key] = result
    return out


def union_by_id(batches: Iterable[Iterable[Document]]) -> List[Document]:
    seen = set()
    merged = []
    for batch in batches:
        for doc in batch:
            key = doc.get("id")
            if key in seen:
                continue
            seen.add(key)
            merged.append(doc)
    return merged


async def fetch_scoped(
    store: DocumentStore,
    collection: str,
    scope: Scope,
    extra: Tuple[Condition, ...] = (),
) -> List[Document]:
    """
    People of `collection` admitted by `scope`. One store query per field
    location the scope can match on; the union goes through the predicate.
    """
    plans = scope.query_plans()
    results = await asyncio.gather(
        *(store.query(collection, [*plan, *extra]) for plan in plans),
        return_exceptions=True,
    )

    batches = []
    failures = []
    for plan, result in zip(plans, results):
        if isinstance(result, Exception):
            log.warning(f"{collection} query {plan} failed: {result}")
            failures.append(result)
        else:
            batches.append(result)

    if failures and not batches:
        raise failures[0]

    return [doc for doc in union_by_id(batches) if scope(doc)]


def person_summary(doc: Document) -> Document:
    """A person document without its embedded issue arrays."""
    return {k: v for k, v in doc.items() if k not in EMBEDDED_FIELDS}


def person_keys(doc: Document) -> List[str]:
    return [str(v) for v in (doc.get("id"), doc.get("uid")) if v]


# ============================================================
# Aggregation Engine
# ============================================================
class AggregationEngine:
    def __init__(self, store: DocumentStore):
        self.store = store

    # -------------------------------------------------
    # Own profile (fatal when missing)
    # -------------------------------------------------
    async def _own_profile(self, identity: Identity) -> Document:
        profile = await locate_profile(
            self.store,
            PROFILE_COLLECTIONS[identity.role],
            identity.id,
            identity.email,
        )
        if profile is None:
            raise NotFound(f"{ROLE_LABELS[identity.role]} profile not found")
        return profile

    async def _own_student(self, identity: Identity) -> Optional[Document]:
        return await locate_profile(self.store, collections.STUDENTS, identity.id, identity.email)

    # -------------------------------------------------
    # Standalone issue rows
    # -------------------------------------------------
    async def _standalone_rows(self, students: List[Document], unrestricted: bool) -> List[Document]:
        if unrestricted:
            return await self.store.query(collections.ISSUES)

        keys = sorted({k for doc in students for k in person_keys(doc)})
        if not keys:
            return []

        batches = await asyncio.gather(
            self.store.query(collections.ISSUES, [("studentId", "in", keys)]),
            self.store.query(collections.ISSUES, [("userId", "in", keys)]),
        )
        return union_by_id(batches)

    # -------------------------------------------------
    # Issues of a population
    # -------------------------------------------------
    def _collect_issues(
        self,
        scope: Scope,
        students: List[Document],
        standalone_rows: Optional[List[Document]],
    ) -> List[Issue]:
        embedded: List[Issue] = []
        by_key: Dict[str, Document] = {}
        for doc in students:
            embedded.extend(normalize_person_issues(doc))
            for key in person_keys(doc):
                by_key.setdefault(key, doc)

        standalone: List[Issue] = []
        for row in standalone_rows or []:
            parent = by_key.get(str(row.get("studentId"))) or by_key.get(str(row.get("userId")))
            if parent is None and not scope.unrestricted:
                continue
            standalone.append(normalize(row, SourceKind.standalone, parent))

        issues = merge_issues(embedded, standalone)
        issues = [issue for issue in issues if scope.admits_issue(issue)]

        if scope.role == Role.floor_attendant:
            issues = [issue for issue in issues if issue.type == IssueType.maintenance]

        return sort_issues(issues)

    async def _scoped_issues(self, scope: Scope, students: List[Document]) -> List[Issue]:
        try:
            rows = await self._standalone_rows(students, scope.unrestricted)
        except Exception as e:
            log.warning(f"Standalone issue query failed, using embedded issues only: {e}")
            rows = []
        return self._collect_issues(scope, students, rows)

    async def _student_population(self, identity: Identity) -> Tuple[Optional[Document], List[Issue]]:
        student = await self._own_student(identity)
        if student is not None:
            # the record may be keyed by something other than the identity id
            scope = Scope(Role.student, person_id=str(student.get("id")))
            return student, await self._scoped_issues(scope, [student])

        # No student record yet: only standalone rows keyed by the identity
        try:
            rows = await self.store.query(collections.ISSUES, [("userId", "==", identity.id)])
        except Exception as e:
            log.warning(f"Standalone issue query failed for {identity.id}: {e}")
            rows = []
        parent = {"id": identity.id, "uid": identity.id, "fullName": identity.display_name}
        return None, sort_issues(normalize(r, SourceKind.standalone, parent) for r in rows)

    async def _population(self, identity: Identity, scope: Scope) -> List[Issue]:
        """Every issue the identity may see."""
        if identity.role == Role.student:
            _, issues = await self._student_population(identity)
            return issues

        students = await fetch_scoped(self.store, collections.STUDENTS, scope)
        return await self._scoped_issues(scope, students)

    # ============================================================
    # getDashboard(identity)
    # ============================================================
    async def get_dashboard(self, identity: Identity) -> dict:
        role = require_role(identity)
        scope = scope_for(identity)
        log.info(f"Dashboard for {identity.id} as {role.value} ({scope!r})")

        if role == Role.student:
            return await self._student_dashboard(identity)
        if role == Role.chief_warden:
            return await self._chief_dashboard(scope)
        if role in HOSTEL_ROLES:
            return await self._hostel_dashboard(identity, scope)
        if role in FLOOR_ROLES:
            return await self._floor_dashboard(identity, scope)

        raise InvalidInput(f"Unsupported role: {role}")

    async def _student_dashboard(self, identity: Identity) -> dict:
        student, issues = await self._student_population(identity)
        return {
            "role": Role.student.value,
            "student": person_summary(student) if student else None,
            "issues": [i.as_record() for i in issues],
            "counts": issue_counts(issues),
        }

    async def _chief_dashboard(self, scope: Scope) -> dict:
        parts = await gather_partial(
            hostels=self.store.query(collections.HOSTELS),
            supervisors=self.store.query(collections.SUPERVISORS),
            hostel_wardens=self.store.query(collections.HOSTEL_WARDENS),
            floor_wardens=self.store.query(collections.FLOOR_WARDENS),
            floor_attendants=self.store.query(collections.FLOOR_ATTENDANTS),
            students=self.store.query(collections.STUDENTS),
            standalone=self.store.query(collections.ISSUES),
        )
        students = parts["students"] or []
        issues = self._collect_issues(scope, students, parts["standalone"])

        return {
            "role": Role.chief_warden.value,
            "hostels": parts["hostels"] or [],
            "staff": {
                "supervisors": parts["supervisors"] or [],
                "hostelWardens": parts["hostel_wardens"] or [],
                "floorWardens": parts["floor_wardens"] or [],
                "floorAttendants": parts["floor_attendants"] or [],
            },
            "students": [person_summary(s) for s in students],
            "issues": [i.as_record() for i in issues],
            "counts": issue_counts(issues),
        }

    async def _hostel_dashboard(self, identity: Identity, scope: Scope) -> dict:
        profile = await self._own_profile(identity)

        parts = await gather_partial(
            hostel=self.store.get(collections.HOSTELS, scope.hostel_id),
            floors=self.store.query(collections.FLOORS, [("hostelId", "==", scope.hostel_id)]),
            students=fetch_scoped(self.store, collections.STUDENTS, scope),
        )
        students = parts["students"] or []
        issues = await self._scoped_issues(scope, students)

        return {
            "role": identity.role.value,
            "profile": person_summary(profile),
            "hostel": parts["hostel"],
            "floors": parts["floors"] or [],
            "students": [person_summary(s) for s in students],
            "issues": [i.as_record() for i in issues],
            "counts": issue_counts(issues),
        }

    async def _floor_dashboard(self, identity: Identity, scope: Scope) -> dict:
        profile = await self._own_profile(identity)
        floor_ids = sorted(scope.floor_ids)

        parts = await gather_partial(
            floors=self.store.query(collections.FLOORS, [("id", "in", floor_ids)]),
            rooms=self.store.query(collections.ROOMS, [("floorId", "in", floor_ids)]),
            students=fetch_scoped(self.store, collections.STUDENTS, scope),
        )
        students = parts["students"] or []
        issues = await self._scoped_issues(scope, students)

        return {
            "role": identity.role.value,
            "profile": person_summary(profile),
            "floors": parts["floors"] or [],
            "rooms": parts["rooms"] or [],
            "students": [person_summary(s) for s in students],
            "issues": [i.as_record() for i in issues],
            "counts": issue_counts(issues),
        }

    # ============================================================
    # GET /issues
    # ============================================================
    async def list_issues(
        self,
        identity: Identity,
        status: Optional[str] = None,
        issue_type: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> dict:
        require_role(identity)

        status_filter = IssueStatusFilter.all
        if status:
            status_filter = IssueStatusFilter.parse(status)
            if status_filter is None:
                raise InvalidInput(f"Invalid status '{status}'. Allowed: {IssueStatusFilter.list()}")

        type_filter = None
        if issue_type:
            type_filter = IssueType.parse(issue_type)
            if type_filter is None:
                raise InvalidInput(f"Invalid type '{issue_type}'. Allowed: {IssueType.list()}")

        limit = min(limit or settings.DEFAULT_ISSUE_LIMIT, settings.MAX_ISSUE_LIMIT)
        offset = max(offset or 0, 0)

        scope = scope_for(identity)
        issues = await self._population(identity, scope)

        if status_filter == IssueStatusFilter.pending:
            issues = [i for i in issues if not i.solved]
        elif status_filter == IssueStatusFilter.solved:
            issues = [i for i in issues if i.solved]

        if type_filter is not None:
            issues = [i for i in issues if i.type == type_filter]

        page = issues[offset:offset + limit]
        return {"issues": [i.as_record() for i in page], "count": len(issues)}

    # ============================================================
    # Public notice board (no identity)
    # ============================================================
    async def public_maintenance_board(self, limit: Optional[int] = None) -> List[dict]:
        limit = min(limit or settings.DEFAULT_ISSUE_LIMIT, settings.MAX_ISSUE_LIMIT)

        parts = await gather_partial(
            students=self.store.query(collections.STUDENTS),
            standalone=self.store.query(
                collections.ISSUES, [("type", "==", IssueType.maintenance.value)]
            ),
        )
        if parts["students"] is None and parts["standalone"] is None:
            raise UpstreamFailure("Notice board query failed")

        scope = Scope(Role.chief_warden)
        issues = self._collect_issues(scope, parts["students"] or [], parts["standalone"])
        issues = [i for i in issues if i.type == IssueType.maintenance][:limit]

        board = []
        for issue in issues:
            record = issue.as_record()
            for field in PRIVATE_ISSUE_FIELDS:
                record.pop(field, None)
            board.append(record)
        return board
