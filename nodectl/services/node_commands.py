"""Service-manager command builders and best-effort read helper."""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

from nodectl.config import Settings, settings
from nodectl.errors import ExecError
from nodectl.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

NO_PROCESSES = "NO_PROCESSES"
ACTIVE = "active"
INACTIVE = "inactive"


async def best_effort(read: Callable[[], Awaitable[T]], placeholder: T, *, what: str) -> T:
    """Await *read*; on an execution error log a warning and return *placeholder*."""
    try:
        return await read()
    except ExecError as exc:
        log.warning("node.read_failed", what=what, error=str(exc))
        return placeholder


def nonempty_lines(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


class NodeCommands:
    """Text of every command issued against the managed node."""

    def __init__(self, cfg: Settings | None = None) -> None:
        self._cfg = cfg or settings

    @property
    def service(self) -> str:
        return self._cfg.celestia_service

    @property
    def pattern(self) -> str:
        # "[c]elestia.*light" still matches the node, but not the remote
        # shell whose own command line carries the pattern.
        raw = self._cfg.celestia_process_pattern
        if not raw or raw.startswith("["):
            return raw
        return f"[{raw[0]}]{raw[1:]}"

    def is_active(self) -> str:
        return f'systemctl is-active {self.service} 2>/dev/null || echo "{INACTIVE}"'

    def start(self) -> str:
        return f"sudo systemctl start {self.service}"

    def stop(self) -> str:
        return f"sudo systemctl stop {self.service}"

    def status_text(self, lines: int = 10) -> str:
        return (
            f"sudo systemctl status {self.service} --no-pager --lines={lines} "
            f'2>/dev/null || echo "Service not found"'
        )

    def journal_tail(self, lines: int = 10) -> str:
        return f"sudo journalctl -u {self.service} --no-pager --lines={lines}"

    def quiescence_probe(self) -> str:
        return f'pgrep -f "{self.pattern}" || echo "{NO_PROCESSES}"'

    def pids_or_empty(self) -> str:
        return f'pgrep -f "{self.pattern}" || true'

    def process_listing(self) -> str:
        return f'ps aux | grep "{self.pattern}" || true'

    def signal(self, pid: str, sig: str) -> str:
        return f"kill -{sig} {pid} 2>&1 || true"

    def init(self, network: str) -> str:
        return f"{self._cfg.celestia_binary_path} light init --p2p.network {network}"

    def node_store(self, network: str, user: str | None = None) -> str:
        if user:
            return f"/home/{user}/.celestia-light-{network}"
        return f"$HOME/.celestia-light-{network}"
