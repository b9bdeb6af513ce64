"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends

from ..services.session import RecitationSession
from ..settings import Settings, get_settings

_SESSION: RecitationSession | None = None


def get_session(settings: Settings = Depends(get_settings)) -> RecitationSession:
    global _SESSION
    if _SESSION is None:
        _SESSION = RecitationSession(settings)
    return _SESSION


def reset_session_cache() -> None:
    global _SESSION
    _SESSION = None
