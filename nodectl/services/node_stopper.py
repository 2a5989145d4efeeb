"""Stop procedure and manual process termination.

Stopping is ``Requesting -> WaitingForQuiescence -> {Confirmed, TimedOut}``.
Only the stop command itself is mandatory; waiting for the process list to
drain is best-effort and a timeout there is reported as a warning, never as a
failed stop.
"""

from __future__ import annotations

import asyncio

from nodectl.config import Settings, settings
from nodectl.errors import ExecError
from nodectl.models.node import StopState
from nodectl.services.executor import RemoteShell
from nodectl.services.node_commands import (
    INACTIVE,
    NO_PROCESSES,
    NodeCommands,
    nonempty_lines,
)
from nodectl.utils.logging import get_logger

log = get_logger(__name__)


class NodeStopper:
    def __init__(
        self,
        shell: RemoteShell,
        commands: NodeCommands,
        cfg: Settings | None = None,
    ) -> None:
        self._shell = shell
        self._cmds = commands
        self._cfg = cfg or settings
        self.state = StopState.requesting

    async def stop(self) -> StopState:
        """Run the stop procedure; stop-command errors propagate."""
        self.state = StopState.requesting
        log.warning("stop.requesting", service=self._cmds.service)
        try:
            await self._shell(
                self._cmds.stop(), timeout=90, requires_sudo=True, retries=2,
            )
        except ExecError as exc:
            self.state = StopState.failed
            log.error("stop.command_failed", error=str(exc))
            raise
        log.info("stop.command_completed")

        self.state = StopState.waiting_for_quiescence
        await asyncio.sleep(self._cfg.settle_delay_seconds)
        await self._report_service_state()
        self.state = await self._wait_for_quiescence()
        return self.state

    async def _report_service_state(self) -> None:
        try:
            result = await self._shell(self._cmds.is_active(), timeout=15, retries=2)
        except ExecError as exc:
            log.warning("stop.service_state_unknown", error=str(exc))
            return
        if INACTIVE in result.stdout:
            log.info("stop.service_inactive")
        else:
            log.warning("stop.service_state", status=result.stdout.strip())

    async def _wait_for_quiescence(self) -> StopState:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._cfg.stop_poll_timeout_seconds
        log.info("stop.verifying")

        while loop.time() < deadline:
            try:
                result = await self._shell(self._cmds.quiescence_probe(), timeout=10)
            except ExecError as exc:
                # the probe always exits 0, so this is a transport problem
                log.warning("stop.probe_failed", error=str(exc))
                return StopState.confirmed

            if result.stdout.strip() == NO_PROCESSES:
                log.info("stop.confirmed")
                return StopState.confirmed

            remaining = nonempty_lines(result.stdout)
            log.warning("stop.waiting", remaining=remaining)
            await asyncio.sleep(self._cfg.stop_poll_interval_seconds)

        log.warning(
            "stop.quiescence_timeout",
            timeout=self._cfg.stop_poll_timeout_seconds,
        )
        return StopState.timed_out


class ProcessKiller:
    """Signal-based termination for node processes not managed by systemd."""

    def __init__(
        self,
        shell: RemoteShell,
        commands: NodeCommands,
        cfg: Settings | None = None,
    ) -> None:
        self._shell = shell
        self._cmds = commands
        self._cfg = cfg or settings

    async def _pids(self) -> list[str]:
        result = await self._shell(self._cmds.pids_or_empty())
        return nonempty_lines(result.stdout)

    async def _signal_all(self, pids: list[str], sig: str) -> None:
        for pid in pids:
            try:
                result = await self._shell(self._cmds.signal(pid, sig))
            except ExecError as exc:
                log.warning("kill.signal_failed", pid=pid, signal=sig, error=str(exc))
                continue
            if result.stdout and "No such process" not in result.stdout:
                log.warning("kill.signal_output", pid=pid, signal=sig, output=result.stdout)
            else:
                log.info("kill.signalled", pid=pid, signal=sig)

    async def kill(self) -> bool:
        """Terminate every matching process; return whether none remain."""
        rounds = self._cfg.kill_rounds
        for round_no in range(1, rounds + 1):
            pids = await self._pids()
            if not pids:
                log.info("kill.none_found", round=round_no)
                break
            log.info("kill.round", round=round_no, rounds=rounds, pids=pids)

            await self._signal_all(pids, "TERM")
            await asyncio.sleep(self._cfg.kill_term_grace_seconds)

            survivors = await self._pids()
            if not survivors:
                log.info("kill.terminated_gracefully")
                break
            await self._signal_all(survivors, "KILL")
            await asyncio.sleep(self._cfg.kill_round_delay_seconds)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._cfg.stop_poll_timeout_seconds
        while True:
            remaining = await self._pids()
            if not remaining:
                log.info("kill.confirmed")
                return True
            if loop.time() >= deadline:
                break
            log.info("kill.waiting", remaining=remaining)
            await asyncio.sleep(self._cfg.kill_verify_interval_seconds)

        log.warning("kill.timeout", remaining=remaining)
        return False
