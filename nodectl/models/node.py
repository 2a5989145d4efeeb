"""Node lifecycle models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class StopState(str, Enum):
    requesting = "requesting"
    waiting_for_quiescence = "waiting_for_quiescence"
    confirmed = "confirmed"
    timed_out = "timed_out"
    failed = "failed"


class StartState(str, Enum):
    checking_idle = "checking_idle"
    already_active = "already_active"
    starting = "starting"
    waiting_for_active = "waiting_for_active"
    confirmed = "confirmed"
    failed = "failed"


class NodeStatus(BaseModel):
    """Detailed view of the managed service and its processes."""

    is_running: bool
    service_status: str
    process_ids: list[str] = Field(default_factory=list)
    process_details: str = ""
    service_details: str = ""
