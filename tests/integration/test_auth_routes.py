"""Register / login and the bearer token they issue."""
import pytest

from app.auth.auth_utils import decode_access_token

pytestmark = pytest.mark.integration


def test_register_then_login(api_client):
    reg = api_client.post("/api/auth/register", json={
        "name": "Meron", "email": "Meron@Example.com", "password": "amharic!"
    })
    assert reg.status_code == 200
    user = reg.json()["user"]
    assert user["email"] == "meron@example.com"
    assert user["role"] == "user"
    assert decode_access_token(reg.json()["token"])["sub"] == user["id"]

    login = api_client.post("/api/auth/login", json={"email": "meron@example.com", "password": "amharic!"})
    assert login.status_code == 200
    assert login.json()["user"]["id"] == user["id"]

    # The issued token opens authenticated routes
    headers = {"Authorization": f"Bearer {login.json()['token']}"}
    assert api_client.get("/api/progress/me", headers=headers).json() == {"progress": []}


def test_duplicate_email(api_client):
    body = {"name": "Meron", "email": "meron@example.com", "password": "pw"}
    assert api_client.post("/api/auth/register", json=body).status_code == 200

    dup = api_client.post("/api/auth/register", json=body)
    assert dup.status_code == 400
    assert dup.json()["message"] == "User already exists"


def test_admin_role_not_self_assignable(api_client):
    resp = api_client.post("/api/auth/register", json={
        "name": "Eve", "email": "eve@example.com", "password": "pw", "role": "admin"
    })
    assert resp.json()["user"]["role"] == "user"


def test_register_missing_fields(api_client):
    assert api_client.post("/api/auth/register", json={"email": "x@example.com"}).status_code == 400


def test_login_failures(api_client):
    api_client.post("/api/auth/register", json={"name": "Meron", "email": "meron@example.com", "password": "pw"})

    assert api_client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "pw"}).status_code == 404
    wrong = api_client.post("/api/auth/login", json={"email": "meron@example.com", "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Invalid credentials"
