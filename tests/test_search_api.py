# tests/test_search_api.py

from fastapi.testclient import TestClient

from conftest import bearer


def test_student_filter_matches_room_number_case_insensitively(client: TestClient, seeded):
    seeded.seed("students", {
        "id": "stu-5",
        "fullName": "Eva Mensah",
        "hostelDetails": {"hostelId": "H1", "floor": "F2", "roomNumber": "B-101a"},
    })

    response = client.get(
        "/search",
        params={"query": "b-101A", "filter": "students"},
        headers=bearer("hostel-warden-token"),
    )

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["id"] for r in results] == ["stu-5"]
    assert all(r["type"] == "Student" for r in results)
    assert "b-101a" in results[0]["hostelDetails"]["roomNumber"].lower()


def test_room_number_substring_only_returns_students(client: TestClient, seeded):
    response = client.get(
        "/search",
        params={"query": "10", "filter": "students"},
        headers=bearer("supervisor-token"),
    )

    results = response.json()["results"]
    assert {r["type"] for r in results} == {"Student"}
    assert [r["id"] for r in results] == ["stu-1"]


def test_invalid_filter_is_400(client: TestClient, seeded):
    response = client.get("/search", params={"query": "x", "filter": "rooms"}, headers=bearer("chief-token"))
    assert response.status_code == 400


def test_blank_query_returns_empty_results(client: TestClient, seeded):
    response = client.get("/search", params={"query": " "}, headers=bearer("chief-token"))
    assert response.json() == {"results": []}
