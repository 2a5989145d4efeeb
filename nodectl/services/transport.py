"""Transport adapter: one ``ssh`` child process per remote command.

The adapter never allocates a terminal and never asks about host keys, so a
spawned process can not block waiting for human input.
"""

from __future__ import annotations

import asyncio
import os
from typing import Optional, Protocol

from nodectl.config import Settings, settings
from nodectl.services.identity import TargetIdentity
from nodectl.utils.logging import get_logger

log = get_logger(__name__)


class ProcessHandle(Protocol):
    """The subset of ``asyncio.subprocess.Process`` the runner relies on."""

    stdout: Optional[asyncio.StreamReader]
    stderr: Optional[asyncio.StreamReader]
    returncode: Optional[int]

    async def wait(self) -> int: ...

    def terminate(self) -> None: ...

    def kill(self) -> None: ...


class Transport(Protocol):
    async def spawn(self, identity: TargetIdentity, command: str) -> ProcessHandle: ...


class SshTransport:
    """Spawns the system ``ssh`` client in batch mode."""

    def __init__(self, cfg: Settings | None = None) -> None:
        self._cfg = cfg or settings

    def build_argv(self, identity: TargetIdentity, command: str) -> list[str]:
        argv = [
            "ssh",
            "-i", os.path.expanduser(identity.key_path),
            "-p", str(self._cfg.ssh_port),
            "-T",  # no pseudo-terminal
            "-o", "BatchMode=yes",
            "-o", "StrictHostKeyChecking=no",
            "-o", "UserKnownHostsFile=/dev/null",
            "-o", "LogLevel=ERROR",
            "-o", f"ConnectTimeout={self._cfg.ssh_connect_timeout_seconds}",
            identity.key,
            command,
        ]
        return argv

    async def spawn(self, identity: TargetIdentity, command: str) -> ProcessHandle:
        argv = self.build_argv(identity, command)
        log.debug("ssh.spawn", target=identity.key, command=command[:80])
        return await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
