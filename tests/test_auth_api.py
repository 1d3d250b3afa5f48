import pytest
from fastapi import status
from conftest import STAFF_PASSWORD

def test_login_success(client, staff_user):
    """Test successful login with valid credentials."""
    response = client.post("/api/auth/login", json={"email": staff_user.email, "password": STAFF_PASSWORD})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"
    assert data["user"]["displayName"] == "Sam Staff"
    assert data["user"]["role"] == "user"

def test_login_invalid_credentials(client, staff_user):
    """Test login failure with wrong password."""
    response = client.post("/api/auth/login", json={"email": staff_user.email, "password": "wrong"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

def test_login_inactive_user(client, db_session, staff_user):
    staff_user.is_active = False
    db_session.commit()
    response = client.post("/api/auth/login", json={"email": staff_user.email, "password": STAFF_PASSWORD})
    assert response.status_code == status.HTTP_403_FORBIDDEN

def test_me_with_bearer_token(client, staff_user, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers(staff_user))
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == staff_user.email
    assert data["firstName"] == "Sam"
    assert data["departmentId"] == staff_user.department_id

def test_me_with_authtoken_header(client, staff_user, get_token):
    """The web client sends the token in a custom header."""
    response = client.get("/api/auth/me", headers={"authtoken": get_token(staff_user)})
    assert response.status_code == 200
    assert response.json()["id"] == staff_user.id

def test_missing_token_is_unauthorized(client):
    response = client.get("/api/auth/me")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["success"] is False

def test_invalid_token_is_unauthorized(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

def test_staff_cannot_reach_manager_endpoints(client, staff_user, auth_headers):
    response = client.get("/api/users/", headers=auth_headers(staff_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN

def test_cron_requires_api_key(client):
    assert client.get("/api/cron/daily-jobs").status_code == 401
    assert client.get("/api/cron/daily-jobs", params={"apiKey": "wrong"}).status_code == 401
    assert client.get("/api/cron/daily-jobs", params={"apiKey": "test-cron-key"}).status_code == 200
