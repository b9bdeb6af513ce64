"""Model loading and recording control endpoints."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import ModelNotReady, PermissionDenied
from ...schemas import ActionResponse, StatusResponse
from ...services.session import RecitationSession
from ..deps import get_session

LOGGER = logging.getLogger("recitekit.api")

router = APIRouter(prefix="/v1", tags=["session"])

_background: set[asyncio.Task] = set()


def _action(session: RecitationSession, label: str = "ok") -> ActionResponse:
    return ActionResponse(
        status=label,
        model_state=session.model_state.value.value,
        scheduler_state=session.scheduler_state.value.value,
    )


@router.get("/status", response_model=StatusResponse)
async def get_status(session: RecitationSession = Depends(get_session)) -> StatusResponse:
    error = session.loader.last_error
    outcome = session.scheduler.outcome.value
    if outcome is not None and outcome.failed:
        error = outcome.error
    return StatusResponse(
        model_state=session.model_state.value.value,
        progress=session.progress.value,
        scheduler_state=session.scheduler_state.value.value,
        recording=session.is_recording,
        transcript=session.transcript.value,
        buffer_seconds=session.buffer_seconds,
        last_error=str(error) if error else None,
    )


@router.post("/model/load", response_model=ActionResponse, status_code=status.HTTP_202_ACCEPTED)
async def load_model(session: RecitationSession = Depends(get_session)) -> ActionResponse:
    task = asyncio.create_task(_load(session))
    _background.add(task)
    task.add_done_callback(_background.discard)
    return _action(session, "accepted")


async def _load(session: RecitationSession) -> None:
    try:
        await session.load_model()
    except Exception:
        LOGGER.exception("Background model load failed")


@router.post("/session/start", response_model=ActionResponse)
async def start_session(session: RecitationSession = Depends(get_session)) -> ActionResponse:
    try:
        await session.start()
    except ModelNotReady as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PermissionDenied as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return _action(session)


@router.post("/session/stop", response_model=ActionResponse)
async def stop_session(session: RecitationSession = Depends(get_session)) -> ActionResponse:
    await session.stop()
    return _action(session)
