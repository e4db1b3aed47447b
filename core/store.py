# core/store.py

"""
Document store adapter.

Every hostel collection is a Supabase table whose rows are treated as JSON
documents: top-level keys are columns, nested objects and arrays
(`hostelDetails`, `issues`, `images`, ...) are jsonb columns. This module
only knows how to read and write documents; it has no business logic.

Blocking PostgREST calls run in worker threads so callers can fan out
several queries with `asyncio.gather` without one blocking the others.
"""

import asyncio
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from supabase import Client

from core.errors import HostelError, NotFound, UpstreamFailure, upstream_failure
from core.logging_config import get_logger
from core.supabase_client import get_supabase_client

log = get_logger("store")

Document = dict
Condition = Tuple[str, str, Any]


# -----------------------------------------------------
# Collection names
# -----------------------------------------------------
STUDENTS = "students"
SUPERVISORS = "supervisors"
HOSTEL_WARDENS = "hostel_wardens"
FLOOR_WARDENS = "floor_wardens"
FLOOR_ATTENDANTS = "floor_attendants"
CHIEF_WARDENS = "chief_wardens"
HOSTELS = "hostels"
FLOORS = "floors"
ROOMS = "rooms"
ISSUES = "issues"            # standalone / legacy issue rows
ISSUE_INDEX = "issue_index"  # issue id -> parent student id


# -----------------------------------------------------
# Helper: dotted field path -> PostgREST JSON path
# -----------------------------------------------------
def column_path(field: str) -> str:
    """
    "hostelDetails.floor"      -> "hostelDetails->>floor"
    "a.b.c"                    -> "a->b->>c"
    Plain column names pass through unchanged.
    """
    parts = field.split(".")
    if len(parts) == 1:
        return field
    head, *middle, last = parts
    return head + "".join(f"->{p}" for p in middle) + f"->>{last}"


def apply_condition(query, field: str, op: str, value: Any):
    column = column_path(field)

    if op == "==":
        return query.eq(column, value)
    if op == "!=":
        return query.neq(column, value)
    if op == "<":
        return query.lt(column, value)
    if op == "<=":
        return query.lte(column, value)
    if op == ">":
        return query.gt(column, value)
    if op == ">=":
        return query.gte(column, value)
    if op == "in":
        return query.in_(column, list(value))
    if op == "array_contains":
        return query.contains(field, [value])

    raise ValueError(f"Unsupported query operator: {op}")


# ============================================================
# Document Store
# ============================================================
class DocumentStore:
    """Generic query/get/set/update primitives over Supabase tables."""

    def __init__(self, client_factory: Callable[[], Optional[Client]] = get_supabase_client):
        self._client_factory = client_factory
        self._client: Optional[Client] = None

    # -------------------------------------------------
    # Internals
    # -------------------------------------------------
    def client(self) -> Client:
        if self._client is None:
            self._client = self._client_factory()
        if self._client is None:
            raise UpstreamFailure("Document store not configured")
        return self._client

    async def _run(self, operation: str, fn: Callable[[], Any]) -> Any:
        try:
            return await asyncio.to_thread(fn)
        except HostelError:
            raise
        except Exception as e:
            raise upstream_failure(e, operation) from e

    # -------------------------------------------------
    # Reads
    # -------------------------------------------------
    async def query(
        self,
        collection: str,
        where: Sequence[Condition] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Document]:
        def run():
            q = self.client().table(collection).select("*")
            for field, op, value in where:
                q = apply_condition(q, field, op, value)
            if order_by:
                q = q.order(column_path(order_by), desc=descending)
            if offset is not None and limit is not None:
                q = q.range(offset, offset + limit - 1)
            elif limit is not None:
                q = q.limit(limit)
            return q.execute().data or []

        rows = await self._run(f"Query {collection}", run)
        log.debug(f"{collection}: {len(rows)} rows for {list(where)}")
        return rows

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        def run():
            res = (
                self.client().table(collection)
                .select("*")
                .eq("id", doc_id)
                .limit(1)
                .execute()
            )
            return res.data[0] if res.data else None

        return await self._run(f"Fetch {collection}/{doc_id}", run)

    async def count(self, collection: str, where: Sequence[Condition] = ()) -> int:
        def run():
            q = self.client().table(collection).select("id", count="exact")
            for field, op, value in where:
                q = apply_condition(q, field, op, value)
            res = q.limit(1).execute()
            return res.count or 0

        return await self._run(f"Count {collection}", run)

    # -------------------------------------------------
    # Writes
    # -------------------------------------------------
    async def set(self, collection: str, doc_id: str, data: Document) -> Document:
        """Create or overwrite a whole document."""
        payload = {**data, "id": doc_id}

        def run():
            res = self.client().table(collection).upsert(payload).execute()
            return res.data[0] if res.data else payload

        return await self._run(f"Write {collection}/{doc_id}", run)

    async def update(self, collection: str, doc_id: str, fields: Document) -> Document:
        """
        Whole-field update of an existing document. Array fields are replaced
        wholesale; a single-row update is applied atomically by Postgres.
        """
        def run():
            res = (
                self.client().table(collection)
                .update(fields)
                .eq("id", doc_id)
                .execute()
            )
            return res.data[0] if res.data else None

        updated = await self._run(f"Update {collection}/{doc_id}", run)
        if updated is None:
            raise NotFound(f"{collection} document {doc_id} not found")
        return updated

    async def array_union(
        self,
        collection: str,
        doc_id: str,
        field: str,
        values: Iterable[Any],
    ) -> Document:
        """
        Append values not already present to an array field. The merge runs
        inside one UPDATE (`jsonb_array_union`), so concurrent appends to the
        same document never overwrite each other.
        """
        params = {"p_table": collection, "p_id": doc_id, "p_field": field, "p_values": list(values)}

        def run():
            return self.client().rpc("jsonb_array_union", params).execute().data

        updated = await self._run(f"Append {collection}/{doc_id}.{field}", run)
        if not updated:
            raise NotFound(f"{collection} document {doc_id} not found")
        return updated

    async def replace_in_array(
        self,
        collection: str,
        doc_id: str,
        field: str,
        element_id: str,
        element: Document,
    ) -> Document:
        """
        Replace the array entry whose `id` is element_id, leaving every other
        entry as it is in the row at write time.
        """
        params = {
            "p_table": collection,
            "p_id": doc_id,
            "p_field": field,
            "p_element_id": element_id,
            "p_element": element,
        }

        def run():
            return self.client().rpc("jsonb_array_replace_by_id", params).execute().data

        updated = await self._run(f"Replace {collection}/{doc_id}.{field}[{element_id}]", run)
        if not updated:
            raise NotFound(f"{collection} document {doc_id} has no {field} entry {element_id}")
        return updated
