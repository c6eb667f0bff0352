from unittest.mock import patch

from conftest import TestSessionLocal
from feedback_hub.models.global_sections import GlobalSections
from feedback_hub.models.user import User
from feedback_hub.seed import seed


@patch("feedback_hub.seed.SessionLocal", TestSessionLocal)
def test_seed_is_idempotent(db):
    first = seed()
    second = seed()

    assert first.id == second.id
    assert first.role == "admin"
    assert db.query(User).count() == 1
    assert db.query(GlobalSections).one().version == 0
