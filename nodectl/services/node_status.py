"""Read-only status queries against the managed node."""

from __future__ import annotations

from nodectl.errors import ExecError
from nodectl.models.node import NodeStatus
from nodectl.services.executor import RemoteShell
from nodectl.services.node_commands import (
    ACTIVE,
    NodeCommands,
    best_effort,
    nonempty_lines,
)
from nodectl.utils.logging import get_logger

log = get_logger(__name__)

SERVICE_DETAILS_UNAVAILABLE = "Could not retrieve service details"
PROCESS_DETAILS_UNAVAILABLE = "Could not retrieve process details"


class NodeStatusReader:
    """Combines the service manager's view with the process list."""

    def __init__(self, shell: RemoteShell, commands: NodeCommands) -> None:
        self._shell = shell
        self._cmds = commands

    async def service_state(self) -> str:
        result = await self._shell(self._cmds.is_active(), timeout=15, retries=2)
        # an inactive unit prints "inactive" twice: once from systemctl, once
        # from the fallback echo
        lines = nonempty_lines(result.stdout)
        return lines[0] if lines else ""

    async def process_ids(self) -> list[str]:
        result = await self._shell(self._cmds.pids_or_empty(), timeout=15, retries=2)
        return nonempty_lines(result.stdout)

    async def is_process_running(self) -> bool:
        try:
            if await self.service_state() == ACTIVE:
                log.info("status.service_active")
                return True
        except ExecError as exc:
            log.debug("status.service_check_failed", error=str(exc))

        try:
            pids = await self.process_ids()
        except ExecError:
            pids = []
        if pids:
            log.info("status.processes_found", pids=pids)
            return True

        log.info("status.not_running")
        return False

    async def status(self) -> NodeStatus:
        service_status = await best_effort(
            self.service_state, "unknown", what="service_state",
        )
        service_details = await best_effort(
            self._service_details, SERVICE_DETAILS_UNAVAILABLE, what="service_details",
        )
        process_ids = await best_effort(self.process_ids, [], what="process_ids")
        process_details = await best_effort(
            self._process_details, PROCESS_DETAILS_UNAVAILABLE, what="process_details",
        )
        return NodeStatus(
            is_running=service_status == ACTIVE or bool(process_ids),
            service_status=service_status,
            process_ids=process_ids,
            process_details=process_details,
            service_details=service_details,
        )

    async def _service_details(self) -> str:
        result = await self._shell(
            self._cmds.status_text(lines=10),
            timeout=30,
            requires_sudo=True,
            retries=2,
        )
        return result.stdout.strip()

    async def _process_details(self) -> str:
        result = await self._shell(self._cmds.process_listing(), timeout=20, retries=2)
        return result.stdout.strip()
