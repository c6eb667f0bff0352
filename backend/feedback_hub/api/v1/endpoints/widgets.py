"""Public widget delivery: the config endpoint and the generated files."""

import logging

from fastapi import APIRouter, Depends, Path
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from feedback_hub.core.database import get_db
from feedback_hub.core.exceptions import NotFoundError
from feedback_hub.schemas.tokens import WidgetConfigResponse
from feedback_hub.services.tokens import get_public_config
from feedback_hub.services.widgets import widget_path

logger = logging.getLogger(__name__)

TOKEN_PATTERN = r"^to_[a-f0-9]{32}$"

router = APIRouter()
# Mounted at the application root, outside the API prefix.
public_router = APIRouter()


@router.get("/{token_id}/config", response_model=WidgetConfigResponse)
def get_widget_config(
    token_id: str = Path(..., pattern=TOKEN_PATTERN),
    db: Session = Depends(get_db),
):
    """Delivery plan for an active token, with the global sections applied."""
    return get_public_config(db, token_id)


def _widget_file(token_id: str, extension: str, media_type: str) -> FileResponse:
    path = widget_path(token_id, extension)
    if not path.is_file():
        raise NotFoundError("Widget not found")
    return FileResponse(path, media_type=media_type)


@public_router.get("/widget_{token_id}.js", include_in_schema=False)
def serve_widget_script(token_id: str = Path(..., pattern=TOKEN_PATTERN)):
    return _widget_file(token_id, "js", "application/javascript")


@public_router.get("/widget_{token_id}.html", include_in_schema=False)
def serve_widget_preview(token_id: str = Path(..., pattern=TOKEN_PATTERN)):
    return _widget_file(token_id, "html", "text/html")
