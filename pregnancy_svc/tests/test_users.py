"""
Tests for profile mirroring and identity error messages.
"""
from conftest import ADMIN_HEADERS, PATIENT_HEADERS


def test_session_creates_patient_profile(client):
    response = client.post("/api/v1/users/session", json={"name": "سارة"}, headers=PATIENT_HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == "patient-1"
    assert data["role"] == "patient"
    assert data["name"] == "سارة"
    assert data["createdAt"] == data["lastLogin"]


def test_session_keeps_admin_role(client, admin_user):
    response = client.post("/api/v1/users/session", json={}, headers=ADMIN_HEADERS)

    data = response.json()
    assert data["role"] == "admin"
    assert data["name"] == "Ahmed"
    assert data["createdAt"] == admin_user.created_at


def test_me_without_profile_is_patient(client):
    response = client.get("/api/v1/users/me", headers={"X-User-ID": "never-synced"})

    assert response.status_code == 200
    assert response.json()["role"] == "patient"


def test_me_admin(client, admin_user):
    response = client.get("/api/v1/users/me", headers=ADMIN_HEADERS)
    assert response.json()["role"] == "admin"


def test_me_requires_user_id(client):
    response = client.get("/api/v1/users/me")
    assert response.status_code == 401


def test_auth_error_known_code(client):
    response = client.get("/api/v1/users/auth-errors/auth/email-already-in-use")

    assert response.status_code == 200
    assert response.json() == {
        "code": "auth/email-already-in-use",
        "message": "هذا البريد الإلكتروني مستخدم بالفعل.",
    }


def test_auth_error_unknown_code(client):
    response = client.get("/api/v1/users/auth-errors/auth/something-new")

    assert response.json()["message"] == "حدث خطأ في المصادقة. يرجى المحاولة مرة أخرى."
