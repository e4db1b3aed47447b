# tests/test_auth.py

"""
Tests for identity resolution and the HTTP authentication boundary.
"""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from conftest import bearer, run
from core.errors import Unauthenticated
from core.identity import IdentityResolver
from models.enums import Role


def gotrue_user(user_id="u1", email="a@hostel.test", app_metadata=None, user_metadata=None):
    return SimpleNamespace(
        user=SimpleNamespace(
            id=user_id,
            email=email,
            app_metadata=app_metadata or {},
            user_metadata=user_metadata or {},
        )
    )


@pytest.fixture
def gotrue_client():
    client = Mock()
    client.auth.get_user.return_value = gotrue_user()
    return client


@pytest.fixture
def resolver(store, gotrue_client):
    return IdentityResolver(store, client_factory=lambda: gotrue_client)


# -----------------------------------------------------
# IdentityResolver
# -----------------------------------------------------
def test_role_and_scope_from_claims(resolver, gotrue_client):
    gotrue_client.auth.get_user.return_value = gotrue_user(
        app_metadata={"role": "floor_warden", "assignedFloors": ["F1", "F2"], "assignedHostel": "H1"},
        user_metadata={"full_name": "Fatima Warden"},
    )
    identity = run(resolver.resolve("good-token"))

    gotrue_client.auth.get_user.assert_called_with("good-token")
    assert identity.role == Role.floor_warden
    assert identity.scope.assigned_floor_ids == {"F1", "F2"}
    assert identity.scope.assigned_hostel_id == "H1"
    assert identity.display_name == "Fatima Warden"


def test_app_metadata_wins_over_user_metadata(resolver, gotrue_client):
    gotrue_client.auth.get_user.return_value = gotrue_user(
        app_metadata={"role": "student"},
        user_metadata={"role": "chief_warden"},
    )
    assert run(resolver.resolve("t")).role == Role.student


def test_role_in_user_metadata_is_ignored(resolver, gotrue_client):
    gotrue_client.auth.get_user.return_value = gotrue_user(
        app_metadata={},
        user_metadata={"role": "chief_warden"},
    )
    identity = run(resolver.resolve("t"))
    assert identity.role is None


def test_floors_in_user_metadata_are_ignored(store, resolver, gotrue_client):
    store.seed("floor_wardens", {"id": "fw-doc", "uid": "u1", "assignedFloors": ["F1"]})
    gotrue_client.auth.get_user.return_value = gotrue_user(
        app_metadata={"role": "floor_warden"},
        user_metadata={"assignedFloors": ["F1", "F2", "F9"], "assignedHostel": "H9"},
    )
    identity = run(resolver.resolve("t"))

    assert identity.scope.assigned_floor_ids == {"F1"}
    assert identity.scope.assigned_hostel_id is None


def test_missing_scope_is_read_from_staff_document(store, resolver, gotrue_client):
    store.seed("floor_wardens", {"id": "fw-doc", "email": "a@hostel.test", "assignedFloors": ["F3"]})
    gotrue_client.auth.get_user.return_value = gotrue_user(app_metadata={"role": "floor_warden"})

    identity = run(resolver.resolve("t"))
    assert identity.scope.assigned_floor_ids == {"F3"}


def test_unknown_role_resolves_to_no_role(resolver, gotrue_client):
    gotrue_client.auth.get_user.return_value = gotrue_user(app_metadata={"role": "janitor"})
    identity = run(resolver.resolve("t"))
    assert identity.role is None
    assert not identity.has_role


def test_rejected_credential_is_unauthenticated(resolver, gotrue_client):
    gotrue_client.auth.get_user.side_effect = Exception("invalid JWT")
    with pytest.raises(Unauthenticated):
        run(resolver.resolve("bad-token"))


def test_blank_credential_is_unauthenticated(resolver, gotrue_client):
    with pytest.raises(Unauthenticated):
        run(resolver.resolve("  "))
    gotrue_client.auth.get_user.assert_not_called()


def test_get_profile(resolver, gotrue_client):
    gotrue_client.auth.admin.get_user_by_id.return_value = gotrue_user(
        email="p@hostel.test",
        user_metadata={"name": "Pat", "avatar_url": "https://img.test/p.png"},
    )
    profile = run(resolver.get_profile("u1"))
    assert profile == {"email": "p@hostel.test", "displayName": "Pat", "photoUrl": "https://img.test/p.png"}


# -----------------------------------------------------
# HTTP boundary
# -----------------------------------------------------
def test_missing_header_is_401(client: TestClient):
    response = client.get("/dashboard")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_invalid_token_is_401(client: TestClient):
    response = client.get("/dashboard", headers=bearer("forged"))
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired authentication token"


def test_verified_identity_without_role_is_403(client: TestClient):
    response = client.get("/dashboard", headers=bearer("no-role-token"))
    assert response.status_code == 403
    assert response.json()["detail"] == "User has no assigned role"


def test_non_bearer_scheme_is_401(client: TestClient):
    response = client.get("/dashboard", headers={"Authorization": "Basic abc"})
    assert response.status_code == 401
