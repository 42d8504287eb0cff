"""Presentation-layer dependencies.

Collaborators are constructed once in app.main.create_app() and stored on
app.state; routes reach them only through these Depends() providers.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from app.core.config import Settings
from app.core.reset_session_store import ResetSessionStore


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_session_store(request: Request) -> ResetSessionStore:
    return request.app.state.session_store


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
SessionStoreDep = Annotated[ResetSessionStore, Depends(get_session_store)]
