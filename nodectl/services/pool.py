"""Session pool with per-target FIFO mailboxes and idle reaping.

Every target identity gets one pooled session.  Requests for a session are
appended to its mailbox and drained by a single worker task, so commands for
the same target run strictly one at a time and in submission order while
different targets proceed independently.  Everything runs on one event loop,
so no locks are involved: each check-then-act on session state happens
without an ``await`` in between.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

from nodectl.config import Settings, settings
from nodectl.errors import PoolClosed
from nodectl.models.commands import CommandOutput, SessionInfo
from nodectl.services.identity import TargetIdentity
from nodectl.services.runner import CommandRunner
from nodectl.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class CommandRequest:
    command: str
    timeout: float
    future: asyncio.Future


@dataclass
class PooledSession:
    identity: TargetIdentity
    last_used: float
    busy: bool = False
    mailbox: deque[CommandRequest] = field(default_factory=deque)
    worker: Optional[asyncio.Task] = None
    current: Optional[CommandRequest] = None


class ConnectionPool:
    """Owns every pooled session and the background idle reaper."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        cfg: Settings | None = None,
        command_delay: float | None = None,
        idle_timeout: float | None = None,
        reap_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cfg = cfg or settings
        self._runner = runner or CommandRunner(cfg=self._cfg)
        self._command_delay = (
            self._cfg.command_delay_seconds if command_delay is None else command_delay
        )
        self._idle_timeout = (
            self._cfg.session_idle_timeout_seconds
            if idle_timeout is None
            else idle_timeout
        )
        self._reap_interval = (
            self._cfg.session_reap_interval_seconds
            if reap_interval is None
            else reap_interval
        )
        self._clock = clock
        self._sessions: dict[str, PooledSession] = {}
        self._reaper: Optional[asyncio.Task] = None

    # ── session lookup ────────────────────────────────────────────────

    def _get_session(self, identity: TargetIdentity) -> PooledSession:
        session = self._sessions.get(identity.key)
        if session is None:
            session = PooledSession(identity=identity, last_used=self._clock())
            self._sessions[identity.key] = session
            log.debug("pool.session_created", target=identity.key)
            if self._reaper is None or self._reaper.done():
                self._start_reaper()
        session.last_used = self._clock()
        return session

    # ── public: submission ────────────────────────────────────────────

    def enqueue(
        self,
        identity: TargetIdentity,
        command: str,
        timeout: float | None = None,
    ) -> asyncio.Future:
        """Append a request and return the future it will be resolved on."""
        loop = asyncio.get_running_loop()
        session = self._get_session(identity)
        request = CommandRequest(
            command=command,
            timeout=self._cfg.command_timeout_seconds if timeout is None else timeout,
            future=loop.create_future(),
        )
        session.mailbox.append(request)
        if session.worker is None:
            session.worker = loop.create_task(self._drain(session))
        return request.future

    async def submit(
        self,
        identity: TargetIdentity,
        command: str,
        timeout: float | None = None,
    ) -> CommandOutput:
        return await self.enqueue(identity, command, timeout)

    # ── worker ────────────────────────────────────────────────────────

    async def _drain(self, session: PooledSession) -> None:
        key = session.identity.key
        session.busy = True
        log.debug("pool.drain_start", target=key, queued=len(session.mailbox))
        try:
            while session.mailbox:
                request = session.mailbox.popleft()
                if request.future.done():
                    # caller gave up before the request was dequeued
                    continue
                session.current = request
                try:
                    result = await self._runner.run(
                        session.identity, request.command, request.timeout,
                    )
                except asyncio.CancelledError:
                    _reject(request, PoolClosed("Pool closed while command was running"))
                    raise
                except Exception as exc:
                    _reject(request, exc)
                else:
                    if not request.future.done():
                        request.future.set_result(result)
                finally:
                    session.current = None
                await asyncio.sleep(self._command_delay)
        finally:
            session.busy = False
            session.worker = None
            session.last_used = self._clock()
            log.debug("pool.drain_done", target=key)

    # ── idle reaping ──────────────────────────────────────────────────

    def _start_reaper(self) -> None:
        self._reaper = asyncio.get_running_loop().create_task(self._reap_loop())

    async def _reap_loop(self) -> None:
        while True:
            await asyncio.sleep(self._reap_interval)
            self.reap_idle()
            if not self._sessions:
                log.debug("pool.reaper_stopped")
                self._reaper = None
                return

    def reap_idle(self, now: float | None = None) -> list[str]:
        """Drop sessions that are idle past the threshold; return their keys."""
        now = self._clock() if now is None else now
        removed: list[str] = []
        for key, session in list(self._sessions.items()):
            if session.busy or session.mailbox:
                continue
            if now - session.last_used > self._idle_timeout:
                del self._sessions[key]
                removed.append(key)
                log.debug("pool.session_reaped", target=key)
        return removed

    # ── public: lifecycle helpers ─────────────────────────────────────

    def close(self) -> None:
        """Stop the reaper, reject outstanding requests and drop all sessions."""
        log.info("pool.closing", sessions=len(self._sessions))
        if self._reaper is not None:
            self._reaper.cancel()
            self._reaper = None
        for session in self._sessions.values():
            while session.mailbox:
                _reject(session.mailbox.popleft(), PoolClosed("Pool closed"))
            if session.worker is not None:
                session.worker.cancel()
        self._sessions.clear()

    def sessions(self) -> list[SessionInfo]:
        now = self._clock()
        return [
            SessionInfo(
                key=key,
                busy=s.busy,
                queued=len(s.mailbox),
                idle_seconds=0.0 if s.busy else round(now - s.last_used, 3),
            )
            for key, s in self._sessions.items()
        ]

    @property
    def reaper_running(self) -> bool:
        return self._reaper is not None and not self._reaper.done()

    def __contains__(self, key: str) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


def _reject(request: CommandRequest, exc: BaseException) -> None:
    if not request.future.done():
        request.future.set_exception(exc)
