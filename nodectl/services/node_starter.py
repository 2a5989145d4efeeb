"""Start procedure for the managed service."""

from __future__ import annotations

import asyncio

from nodectl.config import Settings, settings
from nodectl.errors import ExecError
from nodectl.models.node import StartState
from nodectl.services.executor import RemoteShell
from nodectl.services.node_commands import ACTIVE, NodeCommands, best_effort
from nodectl.services.node_status import NodeStatusReader
from nodectl.utils.logging import get_logger

log = get_logger(__name__)


class NodeStarter:
    def __init__(
        self,
        shell: RemoteShell,
        commands: NodeCommands,
        reader: NodeStatusReader,
        cfg: Settings | None = None,
    ) -> None:
        self._shell = shell
        self._cmds = commands
        self._reader = reader
        self._cfg = cfg or settings
        self.state = StartState.checking_idle

    async def _is_active(self) -> bool:
        return await best_effort(self._reader.service_state, "", what="is_active") == ACTIVE

    async def start(self, network: str) -> StartState:
        """Start the service unless it already runs, then re-check once.

        Unlike the stop procedure there is no poll loop here: a single
        re-check follows the settle delay.
        """
        self.state = StartState.checking_idle
        log.warning("start.requested", network=network, service=self._cmds.service)

        if await self._is_active():
            self.state = StartState.already_active
            log.warning("start.already_active")
            status = await best_effort(
                self._status_text(5), "", what="status_text",
            )
            log.debug("start.current_status", status=status)
            return self.state

        self.state = StartState.starting
        command_error: ExecError | None = None
        try:
            result = await self._shell(self._cmds.start(), requires_sudo=True)
            log.debug("start.command_output", output=result.stdout)
        except ExecError as exc:
            command_error = exc
            log.warning("start.command_failed", error=str(exc))

        await asyncio.sleep(self._cfg.settle_delay_seconds)

        self.state = StartState.waiting_for_active
        if command_error is None and await self._is_active():
            self.state = StartState.confirmed
            log.info("start.confirmed")
            return self.state

        self.state = StartState.failed
        log.error("start.failed")
        await self._log_diagnostics()
        return self.state

    def _status_text(self, lines: int):
        async def read() -> str:
            result = await self._shell(self._cmds.status_text(lines=lines))
            return result.stdout

        return read

    async def _log_diagnostics(self) -> None:
        status = await best_effort(
            self._status_text(20), "unavailable", what="status_text",
        )
        log.info("start.service_status", status=status)

        async def journal() -> str:
            result = await self._shell(self._cmds.journal_tail(lines=10))
            return result.stdout

        logs = await best_effort(journal, "unavailable", what="journal_tail")
        log.info("start.recent_logs", logs=logs)
