"""Single-command execution with timeout escalation.

One call to :meth:`CommandRunner.run` spawns one transport process, streams
its output until exit and classifies the result.  A command that outlives its
timeout gets SIGTERM, then SIGKILL after the grace window; the runner only
returns once the process is gone so a session never has two remote
executions alive at the same time.
"""

from __future__ import annotations

import asyncio
import re
import time
from typing import Optional

from nodectl.config import Settings, settings
from nodectl.errors import CommandFailed, CommandTimeout, TransportError
from nodectl.models.commands import CommandOutput
from nodectl.services.identity import TargetIdentity
from nodectl.services.transport import ProcessHandle, SshTransport, Transport
from nodectl.utils.logging import get_logger

log = get_logger(__name__)

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")

_DEBUG_TRUNCATE = 200
_PROGRESS_INTERVAL = 30.0

# ssh reserves 255 for its own errors (refused, unreachable, auth)
_SSH_CONNECTION_FAILED = 255


def normalize_output(text: str) -> str:
    """Strip escape sequences, control noise and trailing whitespace."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _ANSI_RE.sub("", text)
    text = _CONTROL_RE.sub("", text)
    lines = [line.rstrip() for line in text.split("\n")]
    return "\n".join(lines).strip("\n")


async def _read_stream(stream: Optional[asyncio.StreamReader]) -> bytes:
    if stream is None:
        return b""
    chunks: list[bytes] = []
    while True:
        chunk = await stream.read(65536)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


class CommandRunner:
    """Runs one command against one target; never retries."""

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        kill_grace: float | None = None,
        debug: bool | None = None,
        cfg: Settings | None = None,
    ) -> None:
        self._cfg = cfg or settings
        self._transport = transport or SshTransport(self._cfg)
        self._kill_grace = (
            self._cfg.kill_grace_seconds if kill_grace is None else kill_grace
        )
        self._debug = self._cfg.enable_ssh_debug if debug is None else debug

    async def run(
        self,
        identity: TargetIdentity,
        command: str,
        timeout: float,
    ) -> CommandOutput:
        started = time.monotonic()
        try:
            proc = await self._transport.spawn(identity, command)
        except OSError as exc:
            log.error("runner.spawn_failed", target=identity.key, error=str(exc))
            raise TransportError(f"Could not start remote session: {exc}") from exc

        collector = asyncio.ensure_future(self._collect(proc))
        progress = (
            asyncio.ensure_future(self._report_progress(command, started))
            if self._debug
            else None
        )
        try:
            try:
                returncode, out, err = await asyncio.wait_for(
                    asyncio.shield(collector), timeout,
                )
            except asyncio.TimeoutError:
                elapsed_ms = int((time.monotonic() - started) * 1000)
                log.error("runner.timeout", timeout=timeout, command=command)
                await self._escalate(proc, collector)
                raise CommandTimeout(elapsed_ms, command) from None
            except OSError as exc:
                raise TransportError(f"Remote session broke: {exc}") from exc
        finally:
            if progress is not None:
                progress.cancel()
            # cancelled mid-wait or mid-escalation: the child must not outlive us
            if proc.returncode is None:
                _signal(proc, "kill")
                collector.cancel()

        elapsed = time.monotonic() - started
        stdout = normalize_output(out.decode(errors="replace"))
        stderr = normalize_output(err.decode(errors="replace"))

        if self._debug:
            self._log_debug(command, returncode, elapsed, stdout, stderr)

        if returncode == _SSH_CONNECTION_FAILED:
            log.warning("runner.connection_failed", target=identity.key, stderr=stderr)
            raise TransportError(f"SSH connection failed: {stderr}")
        if returncode != 0:
            raise CommandFailed(returncode, stderr, command)
        return CommandOutput(
            command=command,
            stdout=stdout,
            stderr=stderr,
            exit_code=returncode,
            elapsed_time=elapsed,
        )

    # ── helpers ───────────────────────────────────────────────────────

    async def _collect(self, proc: ProcessHandle) -> tuple[int, bytes, bytes]:
        out, err = await asyncio.gather(
            _read_stream(proc.stdout), _read_stream(proc.stderr),
        )
        returncode = await proc.wait()
        return returncode, out, err

    async def _escalate(self, proc: ProcessHandle, collector: asyncio.Future) -> None:
        """SIGTERM, then SIGKILL once the grace window has passed."""
        _signal(proc, "terminate")
        try:
            await asyncio.wait_for(asyncio.shield(collector), self._kill_grace)
            return
        except asyncio.TimeoutError:
            pass
        log.warning("runner.force_kill", grace=self._kill_grace)
        _signal(proc, "kill")
        try:
            await asyncio.wait_for(collector, self._kill_grace)
        except asyncio.TimeoutError:
            log.error("runner.kill_unconfirmed")

    async def _report_progress(self, command: str, started: float) -> None:
        while True:
            await asyncio.sleep(_PROGRESS_INTERVAL)
            log.debug(
                "runner.still_running",
                command=command[:80],
                elapsed=round(time.monotonic() - started),
            )

    def _log_debug(
        self,
        command: str,
        returncode: int,
        elapsed: float,
        stdout: str,
        stderr: str,
    ) -> None:
        if len(stdout) > _DEBUG_TRUNCATE:
            stdout = stdout[:_DEBUG_TRUNCATE] + "..."
        log.debug(
            "runner.finished",
            command=command,
            rc=returncode,
            elapsed=round(elapsed, 3),
            stdout=stdout,
            stderr=stderr,
        )


def _signal(proc: ProcessHandle, action: str) -> None:
    if proc.returncode is not None:
        return
    try:
        getattr(proc, action)()
    except ProcessLookupError:
        pass
