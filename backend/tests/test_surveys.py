"""Tests for survey CRUD, ownership and persisted card operations."""

from conftest import auth_header, make_user
from feedback_hub.core.config import settings
from feedback_hub.models.audit_log import AuditLog
from feedback_hub.models.survey import Survey
from feedback_hub.services.global_sections import update_global_sections
from feedback_hub.services.survey_config import default_survey_config

SURVEYS_URL = "/api/v1/surveys/"

STEP_X = {"id": "step-x", "type": "section-header", "question": "Globální úvod"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create(client, user, **overrides):
    payload = {"title": "Eshop", "description": "Zpětná vazba"}
    payload.update(overrides)
    resp = client.post(SURVEYS_URL, json=payload, headers=auth_header(user))
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


class TestSurveyCRUD:
    def test_create_uses_default_layout(self, client, db, user):
        body = _create(client, user)
        assert body["status"] == "draft"
        assert body["owner_username"] == "editor"
        assert [c["id"] for c in body["config"]["cards"]] == [0, 1, 2, 3, 4]
        assert body["token_count"] == 0
        assert body["is_active"] is False
        assert db.query(AuditLog).filter_by(action="CREATE_SURVEY").count() == 1

    def test_create_with_invalid_config(self, client, user):
        resp = client.post(SURVEYS_URL, json={"title": "Bad", "config": {"cards": []}}, headers=auth_header(user))
        assert resp.status_code == 400
        assert resp.json()["errors"] == ["Config must contain a non-empty cards array"]

    def test_create_returns_trigger_warnings(self, client, user):
        config = default_survey_config()
        config["cards"][3]["steps"] = [
            {
                "id": "q",
                "type": "single-choice",
                "question": "Pick",
                "options": ["A"],
                "conditionalTriggers": [{"optionIndex": 3}],
            }
        ]
        body = _create(client, user, config=config)
        assert len(body["warnings"]) == 1

    def test_strict_triggers_reject(self, client, user, monkeypatch):
        monkeypatch.setattr(settings, "STRICT_CONDITIONAL_TRIGGERS", True)
        config = default_survey_config()
        config["cards"][3]["steps"] = [
            {
                "id": "q",
                "type": "single-choice",
                "question": "Pick",
                "options": ["A"],
                "conditionalTriggers": [{"optionIndex": 3}],
            }
        ]
        resp = client.post(SURVEYS_URL, json={"title": "Strict", "config": config}, headers=auth_header(user))
        assert resp.status_code == 400

    def test_title_required(self, client, user):
        resp = client.post(SURVEYS_URL, json={"title": ""}, headers=auth_header(user))
        assert resp.status_code == 422

    def test_list_is_scoped_to_owner(self, client, db, user, admin):
        _create(client, user)
        other = make_user(db, username="other", email="other@example.com")
        _create(client, other, title="Other")

        mine = client.get(SURVEYS_URL, headers=auth_header(user)).json()
        assert [s["title"] for s in mine["items"]] == ["Eshop"]
        assert client.get(SURVEYS_URL, headers=auth_header(admin)).json()["total"] == 2

    def test_list_status_filter(self, client, user):
        _create(client, user)
        _create(client, user, title="Live", status="active")
        body = client.get(SURVEYS_URL, params={"status": "active"}, headers=auth_header(user)).json()
        assert [s["title"] for s in body["items"]] == ["Live"]

    def test_foreign_survey_is_404(self, client, db, user):
        survey = _create(client, user)
        other = make_user(db, username="other", email="other@example.com")
        assert client.get(f"{SURVEYS_URL}{survey['id']}", headers=auth_header(other)).status_code == 404

    def test_update(self, client, user):
        survey = _create(client, user)
        resp = client.put(
            f"{SURVEYS_URL}{survey['id']}",
            json={"title": "Eshop 2", "status": "paused"},
            headers=auth_header(user),
        )
        assert resp.status_code == 200
        assert resp.json()["title"] == "Eshop 2"
        assert resp.json()["status"] == "paused"

    def test_empty_update_is_400(self, client, user):
        survey = _create(client, user)
        resp = client.put(f"{SURVEYS_URL}{survey['id']}", json={}, headers=auth_header(user))
        assert resp.status_code == 400

    def test_delete(self, client, db, user):
        survey = _create(client, user)
        assert client.delete(f"{SURVEYS_URL}{survey['id']}", headers=auth_header(user)).status_code == 204
        assert db.query(Survey).count() == 0
        assert client.get(f"{SURVEYS_URL}{survey['id']}", headers=auth_header(user)).status_code == 404


# ---------------------------------------------------------------------------
# Global sections overlay
# ---------------------------------------------------------------------------


class TestGlobalOverlay:
    def test_stored_intro_is_replaced_by_global_sections(self, client, db, user):
        config = default_survey_config()
        config["cards"][2]["steps"] = [{"id": "local", "type": "text", "question": "Stale intro"}]
        existing = _create(client, user, config=config)

        update_global_sections(db, intro_section=[STEP_X], outro_section=[])

        fresh = _create(client, user, title="Fresh")
        for survey_id in (existing["id"], fresh["id"]):
            body = client.get(f"{SURVEYS_URL}{survey_id}", headers=auth_header(user)).json()
            intro = next(c for c in body["config"]["cards"] if c["id"] == 2)
            assert intro["steps"] == [STEP_X]
            assert intro["isGlobal"] is True

    def test_stored_config_is_untouched(self, client, db, user):
        survey = _create(client, user)
        update_global_sections(db, intro_section=[STEP_X], outro_section=[])
        client.get(f"{SURVEYS_URL}{survey['id']}", headers=auth_header(user))
        stored = db.query(Survey).one()
        db.refresh(stored)
        assert stored.config["cards"][2]["steps"] == []


# ---------------------------------------------------------------------------
# Card operations
# ---------------------------------------------------------------------------


class TestCardOperations:
    def test_add_card(self, client, db, user):
        survey = _create(client, user)
        resp = client.post(f"{SURVEYS_URL}{survey['id']}/cards", headers=auth_header(user))
        assert resp.status_code == 201
        body = resp.json()
        assert body["index"] == 4
        cards = body["survey"]["config"]["cards"]
        assert cards[4]["title"] == "Krok 2"
        assert cards[-1]["id"] == 4
        assert db.query(AuditLog).filter_by(action="UPDATE_SURVEY_CARDS").count() == 1

    def test_rename_card(self, client, user):
        survey = _create(client, user)
        resp = client.patch(f"{SURVEYS_URL}{survey['id']}/cards/3", json={"title": "Otázky"}, headers=auth_header(user))
        assert resp.status_code == 200
        assert resp.json()["survey"]["config"]["cards"][3]["title"] == "Otázky"

    def test_rename_admin_card_as_user(self, client, user):
        survey = _create(client, user)
        resp = client.patch(f"{SURVEYS_URL}{survey['id']}/cards/2", json={"title": "Intro"}, headers=auth_header(user))
        assert resp.status_code == 400

    def test_delete_card_reclamps_active_index(self, client, user):
        survey = _create(client, user)
        headers = auth_header(user)
        client.post(f"{SURVEYS_URL}{survey['id']}/cards", headers=headers)

        resp = client.delete(f"{SURVEYS_URL}{survey['id']}/cards/3", params={"active_index": 5}, headers=headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["activeIndex"] == 4
        assert len(body["survey"]["config"]["cards"]) == 5

    def test_delete_last_user_card(self, client, user):
        survey = _create(client, user)
        resp = client.delete(f"{SURVEYS_URL}{survey['id']}/cards/3", headers=auth_header(user))
        assert resp.status_code == 400
        assert "at least one user card" in resp.json()["detail"]

    def test_add_step(self, client, user):
        survey = _create(client, user)
        resp = client.post(
            f"{SURVEYS_URL}{survey['id']}/cards/3/steps",
            json={
                "type": "single-choice",
                "question": "Odkud nás znáte?",
                "options": ["TV", "Jiné"],
                "conditionalTriggers": [{"optionIndex": 1, "textboxLabel": "Upřesněte"}],
            },
            headers=auth_header(user),
        )
        assert resp.status_code == 201
        step = resp.json()["step"]
        assert step["id"].startswith("step-")
        stored = resp.json()["survey"]["config"]["cards"][3]["steps"]
        assert stored == [step]
        assert stored[0]["conditionalTriggers"] == [{"optionIndex": 1, "textboxLabel": "Upřesněte"}]

    def test_add_step_to_global_section(self, client, admin):
        survey = _create(client, admin)
        resp = client.post(f"{SURVEYS_URL}{survey['id']}/cards/2/steps", json=STEP_X, headers=auth_header(admin))
        assert resp.status_code == 400
        assert "global section" in resp.json()["detail"]

    def test_add_invalid_step(self, client, user):
        survey = _create(client, user)
        resp = client.post(
            f"{SURVEYS_URL}{survey['id']}/cards/3/steps",
            json={"type": "text", "question": ""},
            headers=auth_header(user),
        )
        assert resp.status_code == 400
        assert resp.json()["errors"]

    def test_card_index_out_of_range(self, client, user):
        survey = _create(client, user)
        resp = client.patch(f"{SURVEYS_URL}{survey['id']}/cards/42", json={"title": "X"}, headers=auth_header(user))
        assert resp.status_code == 400
