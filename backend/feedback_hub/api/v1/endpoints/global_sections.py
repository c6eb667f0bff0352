"""Global intro/outro sections shared by every survey."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from feedback_hub.api.deps import client_meta
from feedback_hub.core.auth import get_admin_user, get_current_user
from feedback_hub.core.database import get_db
from feedback_hub.core.exceptions import ValidationError
from feedback_hub.models.user import User
from feedback_hub.schemas.global_sections import GlobalSectionsResponse, GlobalSectionsUpdate
from feedback_hub.services import audit
from feedback_hub.services.global_sections import (
    GlobalSectionsSnapshot,
    get_global_sections,
    update_global_sections,
    validate_section_steps,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _out(snapshot: GlobalSectionsSnapshot) -> GlobalSectionsResponse:
    return GlobalSectionsResponse(
        intro_section=snapshot.intro_section,
        outro_section=snapshot.outro_section,
        version=snapshot.version,
        last_updated=snapshot.last_updated,
    )


@router.get("/sections", response_model=GlobalSectionsResponse)
def get_sections(
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _out(get_global_sections(db))


@router.put("/sections", response_model=GlobalSectionsResponse)
def put_sections(
    payload: GlobalSectionsUpdate,
    request: Request,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """Replace both sections. Every survey picks the change up on its next read."""
    errors = validate_section_steps(payload.intro_section, payload.outro_section)
    if errors:
        raise ValidationError("Invalid global sections", details=errors)

    snapshot = update_global_sections(
        db,
        intro_section=payload.intro_section,
        outro_section=payload.outro_section,
        expected_version=payload.expected_version,
    )
    audit.log_audit_event(
        db,
        user_id=admin.id,
        action=audit.UPDATE_GLOBAL_SECTIONS,
        resource_type="GLOBAL_SECTIONS",
        resource_id=snapshot.version,
        details={
            "introSteps": len(snapshot.intro_section),
            "outroSteps": len(snapshot.outro_section),
            "version": snapshot.version,
        },
        **client_meta(request),
    )
    return _out(snapshot)
