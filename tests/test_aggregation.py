# tests/test_aggregation.py

"""
Tests for the role-scoped aggregation engine (services level).
"""

import pytest

from conftest import make_identity, run
from core.errors import Forbidden, InvalidInput, NotFound
from models.enums import Role
from services.aggregation import AggregationEngine
from services.issue_mutation import IssueMutationService


def ids(payload_issues):
    return [i["id"] for i in payload_issues]


# -----------------------------------------------------
# Chief warden
# -----------------------------------------------------
def test_chief_dashboard_aggregates_everything_newest_first(seeded):
    payload = run(AggregationEngine(seeded).get_dashboard(make_identity(Role.chief_warden, "chief-1")))

    assert payload["role"] == "chief_warden"
    assert ids(payload["issues"]) == ["m1", "i3", "i2", "c1", "i1", "s1"]
    assert payload["counts"] == {"total": 6, "open": 5, "resolved": 1}
    assert [h["id"] for h in payload["hostels"]] == ["H1", "H2"]
    assert [s["id"] for s in payload["staff"]["floorAttendants"]] == ["fa-1", "fa-9"]

    # embedded copy wins over the stale standalone row
    i1 = next(i for i in payload["issues"] if i["id"] == "i1")
    assert i1["message"] == "Noisy neighbours"

    # student summaries do not carry the embedded arrays
    assert all("issues" not in s and "complaints" not in s for s in payload["students"])


def test_timestamps_strictly_descending_for_overlapping_students(store):
    store.seed(
        "students",
        {"id": "a", "issues": [{"id": "a1", "timestamp": 3000}, {"id": "a2", "timestamp": 1000}]},
        {"id": "b", "issues": [{"id": "b1", "timestamp": 2500}, {"id": "b2", "timestamp": 1500}]},
        {"id": "c", "complaints": [{"id": "c1", "timestamp": 2000}]},
    )
    payload = run(AggregationEngine(store).get_dashboard(make_identity(Role.chief_warden, "chief-1")))

    stamps = [i["timestampUtc"] for i in payload["issues"]]
    assert ids(payload["issues"]) == ["a1", "b1", "c1", "b2", "a2"]
    assert all(x > y for x, y in zip(stamps, stamps[1:]))


def test_failed_standalone_query_degrades_to_embedded_only(seeded):
    seeded.failing.update({"issues", "hostels"})
    payload = run(AggregationEngine(seeded).get_dashboard(make_identity(Role.chief_warden, "chief-1")))

    assert ids(payload["issues"]) == ["m1", "i3", "i2", "c1", "i1"]
    assert payload["hostels"] == []


# -----------------------------------------------------
# Hostel roles
# -----------------------------------------------------
def test_hostel_warden_dashboard_is_scoped_to_hostel(seeded):
    identity = make_identity(Role.hostel_warden, "hw-1", hostel="H1")
    payload = run(AggregationEngine(seeded).get_dashboard(identity))

    assert payload["profile"]["id"] == "hw-1"
    assert payload["hostel"]["name"] == "North Hall"
    assert sorted(f["id"] for f in payload["floors"]) == ["F1", "F2"]
    assert sorted(s["id"] for s in payload["students"]) == ["stu-1", "stu-2"]
    assert ids(payload["issues"]) == ["m1", "i2", "c1", "i1", "s1"]
    assert all(i["hostel"] == "H1" for i in payload["issues"])


# -----------------------------------------------------
# Floor roles
# -----------------------------------------------------
def test_floor_warden_only_sees_assigned_floors(seeded):
    identity = make_identity(Role.floor_warden, "fw-1", floors={"F1"})
    payload = run(AggregationEngine(seeded).get_dashboard(identity))

    assert [s["id"] for s in payload["students"]] == ["stu-1"]
    assert [r["id"] for r in payload["rooms"]] == ["R101"]
    assert ids(payload["issues"]) == ["i2", "i1", "s1"]
    assert {i["floor"] for i in payload["issues"]} == {"F1"}


def test_floor_attendant_only_sees_maintenance(seeded):
    identity = make_identity(Role.floor_attendant, "fa-1", floors={"F1"})
    payload = run(AggregationEngine(seeded).get_dashboard(identity))

    assert ids(payload["issues"]) == ["i2"]
    assert payload["issues"][0]["category"] == "plumbing"


def test_floor_warden_without_floors_is_forbidden(seeded):
    with pytest.raises(Forbidden):
        run(AggregationEngine(seeded).get_dashboard(make_identity(Role.floor_warden, "fw-1")))


def test_missing_own_profile_is_not_found(seeded):
    identity = make_identity(Role.floor_warden, "fw-ghost", floors={"F1"})
    with pytest.raises(NotFound):
        run(AggregationEngine(seeded).get_dashboard(identity))


def test_failed_student_query_still_returns_profile(seeded):
    seeded.failing.add("students")
    identity = make_identity(Role.floor_warden, "fw-1", floors={"F1"})
    payload = run(AggregationEngine(seeded).get_dashboard(identity))

    assert payload["students"] == []
    assert payload["issues"] == []
    assert [r["id"] for r in payload["rooms"]] == ["R101"]


# -----------------------------------------------------
# Students
# -----------------------------------------------------
def test_student_dashboard_folds_own_issues(seeded):
    identity = make_identity(Role.student, "stu-1", email="stu1@hostel.test")
    payload = run(AggregationEngine(seeded).get_dashboard(identity))

    assert payload["student"]["fullName"] == "Asha Rao"
    assert ids(payload["issues"]) == ["i2", "i1", "s1"]
    assert payload["counts"] == {"total": 3, "open": 2, "resolved": 1}


def test_student_located_by_email_when_uid_missing(store):
    store.seed("students", {"id": "legacy-doc", "email": "old@hostel.test", "issues": [{"id": "x1"}]})
    identity = make_identity(Role.student, "new-uid", email="old@hostel.test")
    payload = run(AggregationEngine(store).get_dashboard(identity))

    assert payload["student"]["id"] == "legacy-doc"
    assert ids(payload["issues"]) == ["x1"]


def test_student_without_record_gets_empty_payload(seeded):
    identity = make_identity(Role.student, "stu-new", email="new@hostel.test")
    payload = run(AggregationEngine(seeded).get_dashboard(identity))

    assert payload["student"] is None
    assert payload["issues"] == []
    assert payload["counts"]["total"] == 0


# -----------------------------------------------------
# GET /issues semantics
# -----------------------------------------------------
def test_list_issues_filters_and_paginates(seeded):
    engine = AggregationEngine(seeded)
    chief = make_identity(Role.chief_warden, "chief-1")

    assert run(engine.list_issues(chief, status="pending"))["count"] == 5
    assert ids(run(engine.list_issues(chief, status="solved"))["issues"]) == ["i2"]
    assert ids(run(engine.list_issues(chief, issue_type="maintenance"))["issues"]) == ["m1", "i2"]

    page = run(engine.list_issues(chief, limit=2, offset=1))
    assert ids(page["issues"]) == ["i3", "i2"]
    assert page["count"] == 6


def test_list_issues_rejects_unknown_filters(seeded):
    engine = AggregationEngine(seeded)
    chief = make_identity(Role.chief_warden, "chief-1")

    with pytest.raises(InvalidInput):
        run(engine.list_issues(chief, status="done"))
    with pytest.raises(InvalidInput):
        run(engine.list_issues(chief, issue_type="noise"))


# -----------------------------------------------------
# Public board
# -----------------------------------------------------
def test_public_board_lists_maintenance_without_ids(seeded):
    board = run(AggregationEngine(seeded).public_maintenance_board())

    assert ids(board) == ["m1", "i2"]
    assert all("authorId" not in i and "studentId" not in i for i in board)


# -----------------------------------------------------
# Display values in hostelDetails
# -----------------------------------------------------
@pytest.fixture
def display_details_student(store):
    store.seed(
        "students",
        {
            "id": "stu-x",
            "uid": "stu-x",
            "fullName": "Xia Wong",
            "hostelId": "H1",
            "floorId": "F1",
            "hostelDetails": {"hostel": "North Hall", "floor": "1"},
        },
    )
    store.seed("hostel_wardens", {"id": "hw-1", "uid": "hw-1", "assignedHostel": "H1"})
    store.seed("floor_wardens", {"id": "fw-1", "uid": "fw-1", "assignedFloors": ["F1"]})
    student = make_identity(Role.student, "stu-x")
    run(IssueMutationService(store).submit_issue(student, "AC broken", "complaint"))
    return store


@pytest.mark.parametrize("identity", [
    make_identity(Role.hostel_warden, "hw-1", hostel="H1"),
    make_identity(Role.floor_warden, "fw-1", floors={"F1"}),
])
def test_issue_with_display_location_stays_in_scope(display_details_student, identity):
    payload = run(AggregationEngine(display_details_student).get_dashboard(identity))

    assert [s["id"] for s in payload["students"]] == ["stu-x"]
    [issue] = payload["issues"]
    assert issue["message"] == "AC broken"
    assert (issue["hostel"], issue["floor"]) == ("H1", "F1")


def test_issue_with_display_location_can_be_solved_by_floor_warden(display_details_student):
    engine = AggregationEngine(display_details_student)
    warden = make_identity(Role.floor_warden, "fw-1", floors={"F1"})
    [issue] = run(engine.list_issues(warden))["issues"]

    run(IssueMutationService(display_details_student).set_solved(warden, issue["id"], True))

    assert run(engine.list_issues(warden, status="solved"))["count"] == 1
