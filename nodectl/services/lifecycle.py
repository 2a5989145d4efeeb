"""Lifecycle facade: start, stop, status and node-store management.

Every operation returns a boolean or a :class:`NodeStatus`.  A missing target
identity or a failed mandatory command is a negative result, not an
exception.
"""

from __future__ import annotations

from typing import Optional

from nodectl.config import Settings, settings
from nodectl.errors import ExecError, NoConnectionConfigured
from nodectl.models.node import NodeStatus, StartState, StopState
from nodectl.services.executor import RemoteExecutor, RemoteShell
from nodectl.services.identity import TargetIdentity
from nodectl.services.node_commands import NodeCommands
from nodectl.services.node_initializer import NodeInitializer
from nodectl.services.node_starter import NodeStarter
from nodectl.services.node_status import NodeStatusReader
from nodectl.services.node_stopper import NodeStopper, ProcessKiller
from nodectl.utils.logging import get_logger

log = get_logger(__name__)

NOT_CONFIGURED = "Remote connection not configured"


class NodeLifecycleService:
    """Orchestrates node operations against one target."""

    def __init__(
        self,
        executor: RemoteExecutor,
        identity: Optional[TargetIdentity],
        cfg: Settings | None = None,
    ) -> None:
        self._executor = executor
        self._identity = identity
        self._cfg = cfg or settings
        self._cmds = NodeCommands(self._cfg)

    @property
    def identity(self) -> Optional[TargetIdentity]:
        return self._identity

    def _shell(self) -> RemoteShell:
        if self._identity is None:
            raise NoConnectionConfigured(NOT_CONFIGURED)
        return self._executor.bind(self._identity)

    def _reader(self, shell: RemoteShell) -> NodeStatusReader:
        return NodeStatusReader(shell, self._cmds)

    # ── lifecycle ─────────────────────────────────────────────────────

    async def start(self, network: str | None = None) -> bool:
        try:
            shell = self._shell()
        except NoConnectionConfigured:
            log.warning("lifecycle.not_configured", operation="start")
            return False
        starter = NodeStarter(shell, self._cmds, self._reader(shell), self._cfg)
        try:
            state = await starter.start(network or self._cfg.celestia_network)
        except ExecError as exc:
            log.error("lifecycle.start_failed", error=str(exc))
            return False
        return state in (StartState.already_active, StartState.confirmed)

    async def stop(self) -> bool:
        try:
            shell = self._shell()
        except NoConnectionConfigured:
            log.warning("lifecycle.not_configured", operation="stop")
            return False
        stopper = NodeStopper(shell, self._cmds, self._cfg)
        try:
            state = await stopper.stop()
        except ExecError as exc:
            log.error("lifecycle.stop_failed", error=str(exc))
            return False
        return state in (StopState.confirmed, StopState.timed_out)

    # ── status ────────────────────────────────────────────────────────

    async def status(self) -> NodeStatus:
        try:
            shell = self._shell()
        except NoConnectionConfigured:
            log.warning("lifecycle.not_configured", operation="status")
            return NodeStatus(
                is_running=False,
                service_status="inactive",
                process_details=NOT_CONFIGURED,
                service_details=NOT_CONFIGURED,
            )
        return await self._reader(shell).status()

    async def is_process_running(self) -> bool:
        try:
            shell = self._shell()
        except NoConnectionConfigured:
            log.warning("lifecycle.not_configured", operation="is_process_running")
            return False
        return await self._reader(shell).is_process_running()

    # ── node store ────────────────────────────────────────────────────

    async def initialize(self, network: str | None = None) -> bool:
        try:
            shell = self._shell()
        except NoConnectionConfigured:
            log.warning("lifecycle.not_configured", operation="initialize")
            return False
        return await NodeInitializer(shell, self._cmds).initialize(
            network or self._cfg.celestia_network,
        )

    async def remove_initialization(
        self,
        network: str | None = None,
        user: str | None = None,
    ) -> bool:
        try:
            shell = self._shell()
        except NoConnectionConfigured:
            log.warning("lifecycle.not_configured", operation="remove_initialization")
            return False
        return await NodeInitializer(shell, self._cmds).remove(
            network or self._cfg.celestia_network,
            user or self._cfg.celestia_user or None,
        )

    async def kill_processes(self) -> bool:
        try:
            shell = self._shell()
        except NoConnectionConfigured:
            log.warning("lifecycle.not_configured", operation="kill_processes")
            return False
        try:
            return await ProcessKiller(shell, self._cmds, self._cfg).kill()
        except ExecError as exc:
            log.error("lifecycle.kill_failed", error=str(exc))
            return False
