"""Retry and sudo policy on top of the connection pool."""

from __future__ import annotations

import asyncio
import re
from typing import Awaitable, Callable, Optional

from nodectl.config import Settings, settings
from nodectl.errors import ExecError
from nodectl.models.commands import CommandOutput
from nodectl.services.identity import TargetIdentity
from nodectl.services.pool import ConnectionPool
from nodectl.utils.logging import get_logger

log = get_logger(__name__)

# ``sudo`` at the start of a line, after a shell separator or inside a
# subshell or command substitution, not already followed by ``-n``.
_SUDO_RE = re.compile(r"(^\s*|[;&|(`]\s*)sudo(?!\s+-n\b)\s+", re.MULTILINE)


def make_non_interactive(command: str) -> str:
    """Rewrite ``sudo`` invocations so a missing password fails immediately."""
    return _SUDO_RE.sub(r"\1sudo -n ", command)


def uses_sudo(command: str) -> bool:
    return "sudo" in command


class RemoteExecutor:
    """Runs commands through the pool with bounded, linearly backed-off retries."""

    def __init__(
        self,
        pool: ConnectionPool,
        *,
        cfg: Settings | None = None,
        backoff: float | None = None,
        sudo_backoff: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._cfg = cfg or settings
        self.pool = pool
        self._backoff = self._cfg.retry_backoff_seconds if backoff is None else backoff
        self._sudo_backoff = (
            self._cfg.sudo_retry_backoff_seconds if sudo_backoff is None else sudo_backoff
        )
        self._sleep = sleep

    async def execute(
        self,
        identity: TargetIdentity,
        command: str,
        *,
        timeout: float | None = None,
        requires_sudo: Optional[bool] = None,
        retries: int = 1,
    ) -> CommandOutput:
        if timeout is None:
            timeout = self._cfg.command_timeout_seconds
        if requires_sudo is None:
            requires_sudo = uses_sudo(command)

        if requires_sudo or command.startswith("sudo"):
            rewritten = make_non_interactive(command)
            if rewritten != command:
                log.debug("executor.sudo_rewritten", command=rewritten)
            return await self._attempt(
                identity, rewritten, timeout, retries, self._sudo_backoff, "sudo",
            )
        return await self._attempt(
            identity, command, timeout, retries, self._backoff, "plain",
        )

    async def _attempt(
        self,
        identity: TargetIdentity,
        command: str,
        timeout: float,
        retries: int,
        base_delay: float,
        path: str,
    ) -> CommandOutput:
        retries = max(1, retries)
        attempt = 1
        while True:
            log.debug(
                "executor.attempt",
                path=path,
                attempt=attempt,
                retries=retries,
                command=command,
            )
            try:
                return await self.pool.submit(identity, command, timeout)
            except ExecError as exc:
                log.warning(
                    "executor.attempt_failed",
                    path=path,
                    attempt=attempt,
                    retries=retries,
                    error=str(exc),
                )
                if attempt >= retries:
                    raise
                await self._sleep(base_delay * attempt)
                attempt += 1

    def bind(self, identity: TargetIdentity) -> RemoteShell:
        return RemoteShell(self, identity)


class RemoteShell:
    """An executor bound to one target: ``await shell("uptime", retries=2)``."""

    def __init__(self, executor: RemoteExecutor, identity: TargetIdentity) -> None:
        self.executor = executor
        self.identity = identity

    async def __call__(
        self,
        command: str,
        *,
        timeout: float | None = None,
        requires_sudo: Optional[bool] = None,
        retries: int = 1,
    ) -> CommandOutput:
        return await self.executor.execute(
            self.identity,
            command,
            timeout=timeout,
            requires_sudo=requires_sudo,
            retries=retries,
        )
