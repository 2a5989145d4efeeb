"""Common API response models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from nodectl.models.commands import SessionInfo


class HealthResponse(BaseModel):
    status: str
    version: str


class PoolResponse(BaseModel):
    configured: bool
    target: Optional[str] = None
    sessions: list[SessionInfo] = []


class StartRequest(BaseModel):
    network: Optional[str] = None


class InitRequest(BaseModel):
    network: Optional[str] = None


class LifecycleResponse(BaseModel):
    operation: str
    success: bool


class RunningResponse(BaseModel):
    running: bool


class ErrorResponse(BaseModel):
    detail: str
