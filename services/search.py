# services/search.py

from typing import List, Optional

from core import store as collections
from core.errors import Forbidden, InvalidInput
from core.identity import require_role
from core.logging_config import get_logger
from core.permission_helpers import can
from core.roles import ROLE_LABELS
from core.store import Document, DocumentStore
from models.enums import Role, SearchFilter, SourceKind
from models.identity import Identity
from services.aggregation import gather_partial, person_summary
from services.issue_normalizer import normalize

log = get_logger("search")

# Unicode private-use sentinel: `message <= q + HIGH_SENTINEL` closes the prefix range
HIGH_SENTINEL = "\uf8ff"

ISSUE_LABEL = "Issue"

PERSON_COLLECTIONS = {
    SearchFilter.students: (collections.STUDENTS, ROLE_LABELS[Role.student]),
    SearchFilter.supervisors: (collections.SUPERVISORS, ROLE_LABELS[Role.supervisor]),
    SearchFilter.hostel_wardens: (collections.HOSTEL_WARDENS, ROLE_LABELS[Role.hostel_warden]),
    SearchFilter.floor_wardens: (collections.FLOOR_WARDENS, ROLE_LABELS[Role.floor_warden]),
    SearchFilter.floor_attendants: (collections.FLOOR_ATTENDANTS, ROLE_LABELS[Role.floor_attendant]),
}

# Top-level fields matched case-insensitively
PERSON_FIELDS = (
    "fullName",
    "name",
    "email",
    "phoneNumber",
    "registrationNumber",
    "course",
    "hostel",
    "room",
    "roomNumber",
)
DETAIL_FIELDS = ("hostel", "roomNumber")


def searchable_values(doc: Document) -> List[str]:
    values = [doc.get(f) for f in PERSON_FIELDS]
    details = doc.get("hostelDetails")
    if isinstance(details, dict):
        values.extend(details.get(f) for f in DETAIL_FIELDS)
    return [str(v) for v in values if v is not None and v != ""]


def matches(doc: Document, needle: str) -> bool:
    needle = needle.lower()
    return any(needle in value.lower() for value in searchable_values(doc))


# ============================================================
# Search Engine
# ============================================================
class SearchEngine:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def _people(self, collection: str, label: str, query: str) -> List[dict]:
        docs = await self.store.query(collection, order_by="fullName")
        return [{**person_summary(doc), "type": label} for doc in docs if matches(doc, query)]

    async def _issues(self, query: str) -> List[dict]:
        """
        Prefix match on `message`. Case-sensitive: it is a store range query,
        so "AC" does not find "ac broken".
        """
        rows = await self.store.query(
            collections.ISSUES,
            [("message", ">=", query), ("message", "<=", query + HIGH_SENTINEL)],
            order_by="message",
        )
        results = []
        for row in rows:
            record = normalize(row, SourceKind.standalone).as_record()
            record["issueType"] = record.pop("type")
            record["type"] = ISSUE_LABEL
            results.append(record)
        return results

    async def search(self, identity: Identity, query: Optional[str], filter: Optional[str] = None) -> List[dict]:
        role = require_role(identity)
        if not can(role, "run", "search"):
            raise Forbidden(f"{ROLE_LABELS[role]}s cannot search")

        selected = SearchFilter.all
        if filter:
            selected = SearchFilter.parse(filter)
            if selected is None:
                raise InvalidInput(f"Invalid filter '{filter}'. Allowed: {SearchFilter.list()}")

        query = (query or "").strip()
        if not query:
            return []

        tasks = {}
        for key, (collection, label) in PERSON_COLLECTIONS.items():
            if selected in (SearchFilter.all, key):
                tasks[key.value] = self._people(collection, label, query)
        if selected in (SearchFilter.all, SearchFilter.issues):
            tasks[SearchFilter.issues.value] = self._issues(query)

        parts = await gather_partial(**tasks)

        results: List[dict] = []
        for key in tasks:
            results.extend(parts[key] or [])

        log.info(f"Search '{query}' ({selected.value}) by {identity.id}: {len(results)} results")
        return results
