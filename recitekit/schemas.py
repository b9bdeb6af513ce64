"""Pydantic schemas for Hub payloads and the control API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TreeRecord(BaseModel):
    type: str
    path: str


class HealthResponse(BaseModel):
    ok: bool = True
    version: str


class StatusResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_state: str
    progress: float = Field(ge=0.0, le=1.0)
    scheduler_state: str
    recording: bool
    transcript: str = ""
    buffer_seconds: float = 0.0
    last_error: str | None = None


class ActionResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    status: str = "ok"
    model_state: str
    scheduler_state: str
