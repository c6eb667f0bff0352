"""Tests for two-step login, JWT access, profile edits and e-mail delivery."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import jwt
import pytest

from conftest import PASSWORD, auth_header, make_user
from feedback_hub.core.config import settings
from feedback_hub.core.exceptions import DeliveryError
from feedback_hub.models.audit_log import AuditLog
from feedback_hub.models.email_confirmation import EmailConfirmation
from feedback_hub.services.auth import (
    create_access_token,
    decode_token,
    generate_confirmation_code,
    hash_password,
    send_confirmation_email,
    verify_password,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

LOGIN_URL = "/api/v1/auth/login"
CONFIRM_URL = "/api/v1/auth/confirm-email"
RESEND_URL = "/api/v1/auth/resend-confirmation"
REGISTER_URL = "/api/v1/auth/register"
ME_URL = "/api/v1/auth/me"
LOGOUT_URL = "/api/v1/auth/logout"

SEND_PATH = "feedback_hub.api.v1.endpoints.auth.send_confirmation_email"


def _login(client, username="editor", password=PASSWORD):
    with patch(SEND_PATH, new_callable=AsyncMock) as mock_send:
        resp = client.post(LOGIN_URL, json={"username": username, "password": password})
    return resp, mock_send


def _latest_code(db, user) -> str:
    confirmation = (
        db.query(EmailConfirmation)
        .filter_by(user_id=user.id)
        .order_by(EmailConfirmation.created_at.desc())
        .first()
    )
    return confirmation.confirmation_code


# ---------------------------------------------------------------------------
# Password / JWT utilities
# ---------------------------------------------------------------------------


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong", hashed)


class TestJWT:
    def test_access_token_claims(self, user):
        payload = decode_token(create_access_token(user))
        assert payload["sub"] == str(user.id)
        assert payload["role"] == "user"
        assert payload["type"] == "access"

    def test_confirmation_code_format(self):
        code = generate_confirmation_code()
        assert len(code) == 6
        assert code == code.upper()
        int(code, 16)


# ---------------------------------------------------------------------------
# Two-step login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_login_sends_code(self, client, db, user):
        resp, mock_send = _login(client)
        assert resp.status_code == 200
        body = resp.json()
        assert body["requiresConfirmation"] is True
        assert body["userId"] == str(user.id)
        assert "access_token" not in body
        mock_send.assert_awaited_once_with(user.email, _latest_code(db, user))
        assert db.query(AuditLog).filter_by(action="LOGIN_ATTEMPT").count() == 1

    def test_login_by_email(self, client, user):
        resp, _ = _login(client, username="Editor@Example.com")
        assert resp.status_code == 200

    def test_wrong_password(self, client, user):
        resp, mock_send = _login(client, password="nope")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid credentials"
        mock_send.assert_not_awaited()

    def test_deactivated_user(self, client, db):
        make_user(db, is_active=False)
        resp, _ = _login(client)
        assert resp.status_code == 403

    def test_delivery_failure_does_not_fail_login(self, client, user):
        with patch(SEND_PATH, new_callable=AsyncMock, side_effect=DeliveryError("down")):
            resp = client.post(LOGIN_URL, json={"username": "editor", "password": PASSWORD})
        assert resp.status_code == 200


class TestConfirmEmail:
    def test_confirm_returns_token(self, client, db, user):
        _login(client)
        resp = client.post(CONFIRM_URL, json={"userId": str(user.id), "confirmationCode": _latest_code(db, user).lower()})
        assert resp.status_code == 200
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["username"] == "editor"

        me = client.get(ME_URL, headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "editor@example.com"

    def test_code_is_single_use(self, client, db, user):
        _login(client)
        payload = {"userId": str(user.id), "confirmationCode": _latest_code(db, user)}
        assert client.post(CONFIRM_URL, json=payload).status_code == 200
        assert client.post(CONFIRM_URL, json=payload).status_code == 401

    def test_wrong_code(self, client, user):
        _login(client)
        resp = client.post(CONFIRM_URL, json={"userId": str(user.id), "confirmationCode": "ZZZZZZ"})
        assert resp.status_code == 401

    def test_expired_code(self, client, db, user):
        _login(client)
        confirmation = db.query(EmailConfirmation).filter_by(user_id=user.id).one()
        confirmation.expires_at = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=1)
        db.commit()
        resp = client.post(CONFIRM_URL, json={"userId": str(user.id), "confirmationCode": confirmation.confirmation_code})
        assert resp.status_code == 401


class TestResendConfirmation:
    def test_cooldown(self, client, user):
        _login(client)
        with patch(SEND_PATH, new_callable=AsyncMock) as mock_send:
            resp = client.post(RESEND_URL, json={"userId": str(user.id)})
        assert resp.status_code == 429
        mock_send.assert_not_awaited()

    def test_resend_after_cooldown(self, client, db, user):
        _login(client)
        confirmation = db.query(EmailConfirmation).filter_by(user_id=user.id).one()
        confirmation.created_at = confirmation.created_at - timedelta(seconds=settings.EMAIL_RESEND_COOLDOWN_SECONDS + 1)
        db.commit()

        with patch(SEND_PATH, new_callable=AsyncMock) as mock_send:
            resp = client.post(RESEND_URL, json={"userId": str(user.id)})
        assert resp.status_code == 200
        mock_send.assert_awaited_once()
        assert db.query(EmailConfirmation).filter_by(user_id=user.id).count() == 2

    def test_delivery_failure_is_502(self, client, user):
        with patch(SEND_PATH, new_callable=AsyncMock, side_effect=DeliveryError()):
            resp = client.post(RESEND_URL, json={"userId": str(user.id)})
        assert resp.status_code == 502

    def test_unknown_user(self, client):
        resp = client.post(RESEND_URL, json={"userId": "00000000-0000-0000-0000-000000000000"})
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


class TestAccessToken:
    def test_expired_token(self, client, user):
        token = jwt.encode(
            {"sub": str(user.id), "type": "access", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        resp = client.get(ME_URL, headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token has expired"

    def test_garbage_token(self, client):
        resp = client.get(ME_URL, headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_deactivated_user_token(self, client, db):
        user = make_user(db, is_active=False)
        assert client.get(ME_URL, headers=auth_header(user)).status_code == 403

    def test_register_requires_admin(self, client, user):
        payload = {"username": "newbie", "email": "newbie@example.com", "password": "secret123"}
        assert client.post(REGISTER_URL, json=payload, headers=auth_header(user)).status_code == 403

    def test_admin_registers_user(self, client, db, admin):
        payload = {"username": "newbie", "email": "Newbie@Example.com", "password": "secret123"}
        resp = client.post(REGISTER_URL, json=payload, headers=auth_header(admin))
        assert resp.status_code == 201
        assert resp.json()["user"]["email"] == "newbie@example.com"

        log = db.query(AuditLog).filter_by(action="CREATE_USER").one()
        assert "password" not in log.details

    def test_logout_is_audited(self, client, db, user):
        assert client.post(LOGOUT_URL, headers=auth_header(user)).status_code == 200
        assert db.query(AuditLog).filter_by(action="LOGOUT", user_id=user.id).count() == 1


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class TestProfile:
    def test_change_username(self, client, user):
        resp = client.put(ME_URL, json={"username": "renamed"}, headers=auth_header(user))
        assert resp.status_code == 200
        assert resp.json()["user"]["username"] == "renamed"

    def test_password_change_requires_current(self, client, user):
        resp = client.put(ME_URL, json={"newPassword": "another123"}, headers=auth_header(user))
        assert resp.status_code == 400

    def test_password_change(self, client, db, user):
        resp = client.put(
            ME_URL,
            json={"currentPassword": PASSWORD, "newPassword": "another123"},
            headers=auth_header(user),
        )
        assert resp.status_code == 200
        db.refresh(user)
        assert verify_password("another123", user.password_hash)

        log = db.query(AuditLog).filter_by(action="UPDATE_USER").one()
        assert log.details == {}

    def test_email_taken(self, client, db, user):
        make_user(db, username="other", email="other@example.com")
        resp = client.put(ME_URL, json={"email": "other@example.com"}, headers=auth_header(user))
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Email already registered"


# ---------------------------------------------------------------------------
# E-mail workflow
# ---------------------------------------------------------------------------


def _mock_async_client(response=None, error=None):
    client = AsyncMock()
    if error is not None:
        client.post.side_effect = error
    else:
        client.post.return_value = response
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=client)
    context.__aexit__ = AsyncMock(return_value=False)
    return context, client


class TestSendConfirmationEmail:
    @pytest.mark.asyncio
    async def test_posts_email_and_code(self, monkeypatch):
        monkeypatch.setattr(settings, "EMAIL_WORKFLOW_URL", "https://workflow.test/hook")
        request = httpx.Request("POST", "https://workflow.test/hook")
        context, client = _mock_async_client(httpx.Response(200, request=request))
        with patch("feedback_hub.services.auth.httpx.AsyncClient", return_value=context):
            await send_confirmation_email("editor@example.com", "A1B2C3")
        client.post.assert_awaited_once_with(
            "https://workflow.test/hook",
            json={"email": "editor@example.com", "special": "A1B2C3"},
        )

    @pytest.mark.asyncio
    async def test_error_status_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "EMAIL_WORKFLOW_URL", "https://workflow.test/hook")
        request = httpx.Request("POST", "https://workflow.test/hook")
        context, _ = _mock_async_client(httpx.Response(500, text="boom", request=request))
        with patch("feedback_hub.services.auth.httpx.AsyncClient", return_value=context):
            with pytest.raises(DeliveryError):
                await send_confirmation_email("editor@example.com", "A1B2C3")

    @pytest.mark.asyncio
    async def test_network_error_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "EMAIL_WORKFLOW_URL", "https://workflow.test/hook")
        context, _ = _mock_async_client(error=httpx.ConnectError("refused"))
        with patch("feedback_hub.services.auth.httpx.AsyncClient", return_value=context):
            with pytest.raises(DeliveryError):
                await send_confirmation_email("editor@example.com", "A1B2C3")

    @pytest.mark.asyncio
    async def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "EMAIL_WORKFLOW_URL", "")
        with pytest.raises(DeliveryError, match="not configured"):
            await send_confirmation_email("editor@example.com", "A1B2C3")
