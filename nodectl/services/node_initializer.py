"""Node store initialization and removal."""

from __future__ import annotations

from nodectl.errors import CommandFailed, ExecError
from nodectl.services.executor import RemoteShell
from nodectl.services.node_commands import NodeCommands
from nodectl.utils.logging import get_logger

log = get_logger(__name__)

_INIT_TIMEOUT = 300.0


class NodeInitializer:
    def __init__(self, shell: RemoteShell, commands: NodeCommands) -> None:
        self._shell = shell
        self._cmds = commands

    async def initialize(self, network: str) -> bool:
        log.info("init.starting", network=network)
        try:
            await self._shell(self._cmds.init(network), timeout=_INIT_TIMEOUT)
        except CommandFailed as exc:
            if "already exists" in exc.stderr:
                log.info("init.already_configured", network=network)
                return True
            log.error("init.failed", network=network, error=str(exc))
            return False
        except ExecError as exc:
            log.error("init.failed", network=network, error=str(exc))
            return False
        log.info("init.done", network=network)
        return True

    async def remove(self, network: str, user: str | None = None) -> bool:
        store = self._cmds.node_store(network, user)
        log.info("init.removing", store=store)
        try:
            await self._shell(f"rm -rf {store}")
        except ExecError as exc:
            log.error("init.remove_failed", store=store, error=str(exc))
            return False
        log.info("init.removed", store=store)
        return True
