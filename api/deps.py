"""FastAPI dependencies."""

from typing import Optional

from fastapi import Header, Request

from config.settings import Settings
from workflow.graph import GenerationOrchestrator

SESSION_USER_HEADER = "X-User-Id"


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    return request.app.state.orchestrator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_user(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """The authenticated user, as set by the fronting auth proxy."""
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return None
