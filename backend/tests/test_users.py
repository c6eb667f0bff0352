"""Tests for admin user management."""

import pytest

from conftest import auth_header, make_user
from feedback_hub.core.exceptions import ConflictError, ValidationError
from feedback_hub.models.audit_log import AuditLog
from feedback_hub.models.user import User
from feedback_hub.services.auth import verify_password
from feedback_hub.services.surveys import create_survey
from feedback_hub.services.users import create_user, delete_user, update_user

USERS_URL = "/api/v1/users/"


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TestUserService:
    def test_create_normalises_email(self, db):
        user = create_user(db, username="jana", email="Jana@Example.COM", password="secret123")
        assert user.email == "jana@example.com"
        assert user.role == "user"
        assert verify_password("secret123", user.password_hash)

    def test_duplicate_username(self, db, user):
        with pytest.raises(ConflictError, match="Username already taken"):
            create_user(db, username="editor", email="x@example.com", password="secret123")

    def test_empty_update(self, db, user):
        with pytest.raises(ValidationError):
            update_user(db, user, {})

    def test_update_password_is_hashed(self, db, user):
        update_user(db, user, {"password": "changed123"})
        assert verify_password("changed123", user.password_hash)

    def test_last_admin_cannot_be_demoted_or_deactivated(self, db, admin):
        with pytest.raises(ValidationError):
            update_user(db, admin, {"role": "user"})
        with pytest.raises(ValidationError):
            update_user(db, admin, {"is_active": False})

    def test_admin_can_be_demoted_when_another_exists(self, db, admin):
        make_user(db, username="admin2", email="admin2@example.com", role="admin")
        assert update_user(db, admin, {"role": "user"}).role == "user"

    def test_last_admin_cannot_be_deleted(self, db, admin):
        with pytest.raises(ValidationError):
            delete_user(db, admin)

    def test_owner_of_surveys_cannot_be_deleted(self, db, user):
        create_survey(db, user, title="Eshop")
        with pytest.raises(ConflictError):
            delete_user(db, user)


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


class TestUsersAPI:
    def test_requires_admin(self, client, user):
        assert client.get(USERS_URL, headers=auth_header(user)).status_code == 403

    def test_list_and_filter(self, client, user, admin):
        headers = auth_header(admin)
        body = client.get(USERS_URL, headers=headers).json()
        assert body["total"] == 2
        admins = client.get(USERS_URL, params={"role": "admin"}, headers=headers).json()
        assert [u["username"] for u in admins["items"]] == ["admin"]

    def test_create(self, client, db, admin):
        resp = client.post(
            USERS_URL,
            json={"username": "jana", "email": "jana@example.com", "password": "secret123", "role": "admin"},
            headers=auth_header(admin),
        )
        assert resp.status_code == 201
        assert resp.json()["role"] == "admin"
        assert "password_hash" not in resp.json()

    def test_create_duplicate_email(self, client, user, admin):
        resp = client.post(
            USERS_URL,
            json={"username": "someone", "email": "editor@example.com", "password": "secret123"},
            headers=auth_header(admin),
        )
        assert resp.status_code == 409

    def test_update(self, client, db, user, admin):
        resp = client.put(f"{USERS_URL}{user.id}", json={"is_active": False}, headers=auth_header(admin))
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False

        log = db.query(AuditLog).filter_by(action="UPDATE_USER").one()
        assert log.details == {"is_active": False}

    def test_get_unknown(self, client, admin):
        resp = client.get(f"{USERS_URL}00000000-0000-0000-0000-000000000000", headers=auth_header(admin))
        assert resp.status_code == 404

    def test_delete(self, client, db, user, admin):
        user_id = user.id
        resp = client.delete(f"{USERS_URL}{user_id}", headers=auth_header(admin))
        assert resp.status_code == 200
        assert db.get(User, user_id) is None
        assert db.query(AuditLog).filter_by(action="DELETE_USER").one().details == {"username": "editor"}

    def test_delete_last_admin_is_400(self, client, admin):
        resp = client.delete(f"{USERS_URL}{admin.id}", headers=auth_header(admin))
        assert resp.status_code == 400
