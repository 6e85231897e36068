import pytest
from django.contrib.auth.models import User
from helpers import post_json

pytestmark = pytest.mark.django_db


def test_register_logs_in(client):
    resp = post_json(client, "/api/auth/register/", {
        "email": "Carol@Example.com", "password": "another-Passw0rd", "displayName": "Carol",
    })
    assert resp.status_code == 201
    user = resp.json()["user"]
    assert user["email"] == "carol@example.com"
    assert user["display_name"] == "Carol"
    assert user["credits"] == 0

    assert client.get("/api/auth/session/").json()["user"]["email"] == "carol@example.com"
    assert User.objects.get(email="carol@example.com").username == "carol"


def test_register_rejects_taken_email(client, user):
    resp = post_json(client, "/api/auth/register/", {"email": "alice@example.com", "password": "another-Passw0rd"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_REGISTRATION"
    assert "email" in resp.json()["fields"]


def test_register_rejects_weak_password(client):
    resp = post_json(client, "/api/auth/register/", {"email": "dan@example.com", "password": "123"})
    assert resp.json()["code"] == "INVALID_REGISTRATION"
    assert "password2" in resp.json()["fields"]


def test_username_collision_gets_suffix(client, user):
    post_json(client, "/api/auth/register/", {"email": "alice@elsewhere.test", "password": "another-Passw0rd"})
    assert User.objects.get(email="alice@elsewhere.test").username == "alice1"


def test_login_logout(client, user):
    resp = post_json(client, "/api/auth/login/", {"email": "ALICE@example.com", "password": "s3cret-Passw0rd"})
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == user.pk

    post_json(client, "/api/auth/logout/")
    assert client.get("/api/auth/session/").json() == {"user": None}


def test_login_wrong_password(client, user):
    resp = post_json(client, "/api/auth/login/", {"email": "alice@example.com", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_CREDENTIALS"


def test_profile_update(auth_client):
    resp = post_json(auth_client, "/api/profile/", {
        "displayName": "  Alice W  ", "avatarUrl": "https://cdn.test/a.png",
    })
    assert resp.json()["user"]["display_name"] == "Alice W"
    assert auth_client.get("/api/profile/").json()["user"]["avatar_url"] == "https://cdn.test/a.png"


def test_profile_requires_login(client):
    assert client.get("/api/profile/").status_code == 401


def test_csrf_endpoint_issues_both_tokens(client):
    resp = client.get("/api/csrf/")
    body = resp.json()
    assert len(body["csrfToken"]) == 64
    assert resp.cookies["csrf_token"].value == body["csrfToken"]
    assert resp.cookies["csrf_token"]["samesite"] == "Strict"
    assert body["djangoCsrfToken"]

    # an existing token is kept
    assert client.get("/api/csrf/").json()["csrfToken"] == body["csrfToken"]
