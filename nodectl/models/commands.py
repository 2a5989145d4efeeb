"""Command-related data structures."""

from __future__ import annotations

from pydantic import BaseModel


class CommandOutput(BaseModel):
    """Normalized result of a remote command that exited with status 0."""

    command: str
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    elapsed_time: float = 0.0


class SessionInfo(BaseModel):
    """Point-in-time view of one pooled session."""

    key: str
    busy: bool
    queued: int
    idle_seconds: float
