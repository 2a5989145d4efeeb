"""Target identity resolution."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from nodectl.config import Settings, settings


class TargetIdentity(BaseModel):
    """Key path, user and host of one remote target."""

    model_config = ConfigDict(frozen=True)

    key_path: str
    user: str
    host: str

    @property
    def key(self) -> str:
        return f"{self.user}@{self.host}"


def resolve_identity(cfg: Settings | None = None) -> Optional[TargetIdentity]:
    """Build the target identity, or ``None`` if user or host is missing."""
    _cfg = cfg or settings
    if not _cfg.remote_user or not _cfg.remote_host:
        return None
    return TargetIdentity(
        key_path=_cfg.ssh_key_path,
        user=_cfg.remote_user,
        host=_cfg.remote_host,
    )
