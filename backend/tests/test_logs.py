"""Tests for the audit trail and the admin log browsing endpoints."""

import uuid
from datetime import datetime, timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from conftest import auth_header
from feedback_hub.models.audit_log import AuditLog
from feedback_hub.services import audit

LOGS_URL = "/api/v1/logs/"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _log(db, user=None, action=audit.CREATE_SURVEY, resource_type="SURVEY", **kwargs):
    audit.log_audit_event(
        db,
        user_id=user.id if user else None,
        action=action,
        resource_type=resource_type,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


class TestSanitize:
    def test_drops_secrets_recursively(self):
        details = {
            "username": "jana",
            "password": "secret",
            "nested": {"newPassword": "x", "keep": 1},
            "items": [{"token": "t", "id": 2}],
        }
        assert audit.sanitize_details(details) == {
            "username": "jana",
            "nested": {"keep": 1},
            "items": [{"id": 2}],
        }

    def test_uuid_becomes_string(self):
        value = uuid.uuid4()
        assert audit.sanitize_details({"id": value}) == {"id": str(value)}


class TestLogAuditEvent:
    def test_writes_row(self, db, user):
        _log(db, user, resource_id=uuid.UUID(int=1), details={"title": "Eshop"}, ip_address="10.0.0.1")
        row = db.query(AuditLog).one()
        assert row.user_id == user.id
        assert row.resource_id == str(uuid.UUID(int=1))
        assert row.details == {"title": "Eshop"}
        assert row.ip_address == "10.0.0.1"

    def test_failure_is_swallowed(self, db, user):
        with patch.object(db, "commit", side_effect=OperationalError("INSERT", {}, Exception("locked"))):
            _log(db, user)
        assert db.query(AuditLog).count() == 0


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestLogQueries:
    def test_list_filters(self, db, user, admin):
        _log(db, user, action=audit.CREATE_SURVEY)
        _log(db, admin, action=audit.CREATE_USER, resource_type="USER")
        _log(db, None, action=audit.RESPONSE_SUBMIT, resource_type="SURVEY_RESPONSE")

        logs, total = audit.list_audit_logs(db, action=audit.CREATE_USER)
        assert total == 1
        assert logs[0].user.username == "admin"

        logs, total = audit.list_audit_logs(db, user_id=user.id)
        assert [log.action for log in logs] == [audit.CREATE_SURVEY]

        _, total = audit.list_audit_logs(db, to_date=datetime(2000, 1, 1))
        assert total == 0

    def test_summary(self, db, user, admin):
        _log(db, user)
        _log(db, user)
        _log(db, admin, action=audit.CREATE_USER, resource_type="USER")

        summary = audit.audit_summary(db, days=7)
        assert summary["total"] == 3
        assert summary["actions"][0] == {"name": audit.CREATE_SURVEY, "count": 2}
        assert {"name": "USER", "count": 1} in summary["resource_types"]
        assert summary["active_users"][0] == {"name": "editor", "count": 2}
        assert sum(day["count"] for day in summary["daily_activity"]) == 3

    def test_summary_ignores_old_entries(self, db, user):
        db.add(
            AuditLog(
                user_id=user.id,
                action=audit.CREATE_SURVEY,
                resource_type="SURVEY",
                timestamp=datetime.now() - timedelta(days=90),
            )
        )
        db.commit()
        assert audit.audit_summary(db, days=30)["total"] == 0

    def test_filters(self, db, user):
        _log(db, user)
        _log(db, None, action=audit.RESPONSE_SUBMIT, resource_type="SURVEY_RESPONSE")
        filters = audit.audit_filters(db)
        assert filters["actions"] == [audit.CREATE_SURVEY, audit.RESPONSE_SUBMIT]
        assert filters["resource_types"] == ["SURVEY", "SURVEY_RESPONSE"]
        assert filters["users"] == [{"id": str(user.id), "username": "editor", "email": "editor@example.com"}]


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


class TestLogsAPI:
    def test_requires_admin(self, client, user):
        assert client.get(LOGS_URL, headers=auth_header(user)).status_code == 403

    def test_list_includes_username(self, client, db, user, admin):
        _log(db, user, details={"title": "Eshop"})
        body = client.get(LOGS_URL, headers=auth_header(admin)).json()
        assert body["total"] == 1
        assert body["items"][0]["username"] == "editor"
        assert body["items"][0]["details"] == {"title": "Eshop"}

    def test_filter_by_action(self, client, db, user, admin):
        _log(db, user)
        _log(db, user, action=audit.DELETE_SURVEY)
        body = client.get(LOGS_URL, params={"action": audit.DELETE_SURVEY}, headers=auth_header(admin)).json()
        assert [item["action"] for item in body["items"]] == [audit.DELETE_SURVEY]

    def test_summary_and_filters(self, client, db, user, admin):
        _log(db, user)
        headers = auth_header(admin)
        summary = client.get(f"{LOGS_URL}summary", params={"days": 7}, headers=headers)
        assert summary.status_code == 200
        assert summary.json()["total"] == 1

        filters = client.get(f"{LOGS_URL}filters", headers=headers)
        assert filters.status_code == 200
        assert filters.json()["actions"] == [audit.CREATE_SURVEY]

    def test_summary_days_bounds(self, client, admin):
        resp = client.get(f"{LOGS_URL}summary", params={"days": 0}, headers=auth_header(admin))
        assert resp.status_code == 422
