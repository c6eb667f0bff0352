from fastapi import APIRouter

from feedback_hub.api.v1.endpoints import (
    auth,
    global_sections,
    logs,
    responses,
    surveys,
    tokens,
    users,
    widgets,
)

api_v1_router = APIRouter()

api_v1_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_v1_router.include_router(global_sections.router, prefix="/global-surveys", tags=["global-sections"])
api_v1_router.include_router(surveys.router, prefix="/surveys", tags=["surveys"])
api_v1_router.include_router(tokens.router, prefix="/tokens", tags=["tokens"])
api_v1_router.include_router(responses.router, prefix="/responses", tags=["responses"])
api_v1_router.include_router(widgets.router, prefix="/widgets", tags=["widgets"])
api_v1_router.include_router(users.router, prefix="/users", tags=["users"])
api_v1_router.include_router(logs.router, prefix="/logs", tags=["logs"])
