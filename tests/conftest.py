# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.

Services are exercised against an in-memory document store with the same
async interface as core.store.DocumentStore; the HTTP layer is wired to it
through app.dependency_overrides[get_context].
"""

import asyncio
import copy
from typing import Dict, Generator, Optional

import pytest
from fastapi.testclient import TestClient

from main import create_app
from core.context import AppContext, get_context
from core.errors import NotFound, Unauthenticated, UpstreamFailure
from models.enums import Role
from models.identity import Identity, IdentityScope


# -----------------------------------------------------
# In-memory document store
# -----------------------------------------------------
MISSING = object()


def field_value(doc: dict, field: str):
    value = doc
    for part in field.split("."):
        if not isinstance(value, dict) or part not in value:
            return MISSING
        value = value[part]
    return value


def condition_holds(doc: dict, field: str, op: str, expected) -> bool:
    value = field_value(doc, field)
    if op == "array_contains":
        return isinstance(value, list) and expected in value
    if value is MISSING or value is None:
        return False
    if op == "==":
        return value == expected
    if op == "!=":
        return value != expected
    if op == "in":
        return value in expected
    try:
        if op == "<":
            return value < expected
        if op == "<=":
            return value <= expected
        if op == ">":
            return value > expected
        if op == ">=":
            return value >= expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported query operator: {op}")


class InMemoryStore:
    """Dict-of-dicts stand-in for DocumentStore. Insertion order is kept."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self.failing = set()
        self.calls = []

    # -------------------------------------------------
    # Test helpers
    # -------------------------------------------------
    def seed(self, collection: str, *docs: dict):
        for doc in docs:
            self.collections.setdefault(collection, {})[str(doc["id"])] = copy.deepcopy(doc)

    def doc(self, collection: str, doc_id: str) -> Optional[dict]:
        return copy.deepcopy(self.collections.get(collection, {}).get(doc_id))

    def _check(self, collection: str, operation: str):
        self.calls.append((operation, collection))
        if collection in self.failing:
            raise UpstreamFailure(f"{operation} {collection} failed")

    # -------------------------------------------------
    # DocumentStore interface
    # -------------------------------------------------
    async def query(self, collection, where=(), *, order_by=None, descending=False, limit=None, offset=None):
        self._check(collection, "query")
        rows = [
            copy.deepcopy(d)
            for d in self.collections.get(collection, {}).values()
            if all(condition_holds(d, f, op, v) for f, op, v in where)
        ]
        if order_by:
            rows.sort(key=lambda d: str(field_value(d, order_by) or ""), reverse=descending)
        start = offset or 0
        if limit is not None:
            return rows[start:start + limit]
        return rows[start:]

    async def get(self, collection, doc_id):
        self._check(collection, "get")
        return self.doc(collection, str(doc_id))

    async def count(self, collection, where=()):
        return len(await self.query(collection, where))

    async def set(self, collection, doc_id, data):
        self._check(collection, "set")
        doc = {**copy.deepcopy(data), "id": doc_id}
        self.collections.setdefault(collection, {})[str(doc_id)] = doc
        return copy.deepcopy(doc)

    async def update(self, collection, doc_id, fields):
        self._check(collection, "update")
        existing = self.collections.get(collection, {}).get(str(doc_id))
        if existing is None:
            raise NotFound(f"{collection} document {doc_id} not found")
        existing.update(copy.deepcopy(fields))
        return copy.deepcopy(existing)

    async def array_union(self, collection, doc_id, field, values):
        # no await between the read and the write
        self._check(collection, "array_union")
        existing = self.collections.get(collection, {}).get(str(doc_id))
        if existing is None:
            raise NotFound(f"{collection} document {doc_id} not found")
        current = existing.get(field) if isinstance(existing.get(field), list) else []
        existing[field] = current
        for value in copy.deepcopy(list(values)):
            if value not in current:
                current.append(value)
        return copy.deepcopy(existing)

    async def replace_in_array(self, collection, doc_id, field, element_id, element):
        self._check(collection, "replace_in_array")
        existing = self.collections.get(collection, {}).get(str(doc_id))
        entries = existing.get(field) if existing else None
        if not isinstance(entries, list):
            raise NotFound(f"{collection} document {doc_id} has no {field} entry {element_id}")
        for index, entry in enumerate(entries):
            if isinstance(entry, dict) and str(entry.get("id")) == str(element_id):
                entries[index] = copy.deepcopy(element)
                return copy.deepcopy(existing)
        raise NotFound(f"{collection} document {doc_id} has no {field} entry {element_id}")


# -----------------------------------------------------
# Identity resolver with fixed tokens
# -----------------------------------------------------
class StaticIdentityResolver:
    def __init__(self, identities: Dict[str, Identity]):
        self.identities = identities

    async def resolve(self, token):
        identity = self.identities.get(token)
        if identity is None:
            raise Unauthenticated()
        return identity


# -----------------------------------------------------
# Blob store that records uploads
# -----------------------------------------------------
class RecordingBlobStore:
    def __init__(self):
        self.uploads = []

    async def upload(self, data, folder_path, public_id, content_type=None):
        self.uploads.append({
            "data": data,
            "folder_path": folder_path,
            "public_id": public_id,
            "content_type": content_type,
        })
        key = f"{folder_path}/{public_id}"
        return {"secure_url": f"https://cdn.test/{key}", "key": key}


# -----------------------------------------------------
# Identity factory
# -----------------------------------------------------
def make_identity(
    role: Optional[Role],
    user_id: str = "user-1",
    email: Optional[str] = None,
    hostel: Optional[str] = None,
    floors=(),
) -> Identity:
    return Identity(
        id=user_id,
        email=email or f"{user_id}@hostel.test",
        display_name=user_id.replace("-", " ").title(),
        role=role,
        scope=IdentityScope(assigned_hostel_id=hostel, assigned_floor_ids=set(floors)),
    )


def run(coro):
    return asyncio.run(coro)


# -----------------------------------------------------
# Fixtures
# -----------------------------------------------------
@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def blobs() -> RecordingBlobStore:
    return RecordingBlobStore()


@pytest.fixture
def identities() -> Dict[str, Identity]:
    """token -> Identity"""
    return {
        "student-token": make_identity(Role.student, "stu-1", email="stu1@hostel.test"),
        "new-student-token": make_identity(Role.student, "stu-new", email="new@hostel.test"),
        "no-role-token": make_identity(None, "anon-1"),
        "chief-token": make_identity(Role.chief_warden, "chief-1"),
        "supervisor-token": make_identity(Role.supervisor, "sup-1", hostel="H1"),
        "hostel-warden-token": make_identity(Role.hostel_warden, "hw-1", hostel="H1"),
        "floor-warden-token": make_identity(Role.floor_warden, "fw-1", hostel="H1", floors={"F1"}),
        "unassigned-warden-token": make_identity(Role.floor_warden, "fw-2"),
        "attendant-token": make_identity(Role.floor_attendant, "fa-1", hostel="H1", floors={"F1"}),
    }


@pytest.fixture(scope="function")
def app(store, blobs, identities):
    """Create a test FastAPI application instance wired to in-memory collaborators."""
    application = create_app()
    ctx = AppContext(store=store, identity=StaticIdentityResolver(identities), blobs=blobs)
    application.dependency_overrides[get_context] = lambda: ctx
    return application


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# -----------------------------------------------------
# Seed data: two hostels, three floors, three students
# -----------------------------------------------------
def seed_hostel(store: InMemoryStore) -> InMemoryStore:
    store.seed(
        "students",
        {
            "id": "stu-1",
            "uid": "stu-1",
            "fullName": "Asha Rao",
            "email": "stu1@hostel.test",
            "phoneNumber": "555-0101",
            "course": "Physics",
            "hostelDetails": {"hostelId": "H1", "hostel": "H1", "floor": "F1", "roomNumber": "101", "room_id": "R101"},
            "issues": [
                {"id": "i1", "type": "complaint", "message": "Noisy neighbours", "timestamp": "2024-03-01T10:00:00Z"},
                {
                    "id": "i2",
                    "type": "maintenance",
                    "category": "plumbing",
                    "message": "Leaking tap",
                    "timestamp": "2024-03-03T10:00:00Z",
                    "isSolved": True,
                },
            ],
        },
        {
            "id": "stu-2",
            "uid": "stu-2",
            "fullName": "Ben Okafor",
            "email": "ben@hostel.test",
            "hostelId": "H1",
            "floor": "F2",
            "room": "204",
            "complaints": [{"id": "c1", "message": "Cold water", "date": "2024-03-02"}],
            "maintenance": [
                {"id": "m1", "message": "Broken fan", "category": "electrical", "timestamp": {"seconds": 1709596800}},
            ],
        },
        {
            "id": "stu-3",
            "uid": "stu-3",
            "fullName": "Chen Li",
            "email": "chen@hostel.test",
            "hostelDetails": {"hostelId": "H2", "hostel": "H2", "floor": "F9", "roomNumber": "905"},
            "issues": [
                {"id": "i3", "type": "complaint", "message": "Wifi down", "timestamp": "2024-03-04T08:00:00Z"},
            ],
        },
    )
    store.seed(
        "issues",
        {"id": "s1", "userId": "stu-1", "type": "complaint", "message": "Lost key", "timestamp": "2024-02-20T09:00:00Z"},
        {"id": "i1", "studentId": "stu-1", "message": "stale copy", "timestamp": "2024-01-01T00:00:00Z"},
    )
    store.seed("hostels", {"id": "H1", "name": "North Hall", "totalFloors": 2}, {"id": "H2", "name": "South Hall"})
    store.seed(
        "floors",
        {"id": "F1", "hostelId": "H1", "totalRooms": 20},
        {"id": "F2", "hostelId": "H1", "totalRooms": 20},
        {"id": "F9", "hostelId": "H2", "totalRooms": 10},
    )
    store.seed(
        "rooms",
        {"id": "R101", "floorId": "F1", "hostelId": "H1", "images": ["https://cdn.test/a.jpg"], "photos": ["https://cdn.test/b.jpg"]},
        {"id": "R905", "floorId": "F9", "hostelId": "H2"},
    )
    store.seed("supervisors", {"id": "sup-1", "uid": "sup-1", "fullName": "Sam Supervisor", "assignedHostel": "H1"})
    store.seed("hostel_wardens", {"id": "hw-1", "uid": "hw-1", "fullName": "Hana Warden", "assignedHostel": "H1"})
    store.seed(
        "floor_wardens",
        {"id": "fw-1", "uid": "fw-1", "fullName": "Fatima Warden", "assignedHostel": "H1", "assignedFloors": ["F1"]},
    )
    store.seed(
        "floor_attendants",
        {"id": "fa-1", "uid": "fa-1", "fullName": "Femi Attendant", "assignedHostel": "H1", "assignedFloors": ["F1"]},
        {"id": "fa-9", "uid": "fa-9", "fullName": "Gus Attendant", "assignedHostel": "H2", "assignedFloors": ["F9"]},
    )
    return store


@pytest.fixture
def seeded(store) -> InMemoryStore:
    return seed_hostel(store)
