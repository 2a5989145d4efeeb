"""Error taxonomy for remote command execution."""

from __future__ import annotations


class ExecError(Exception):
    """Base class for every failure raised by the execution stack."""


class TransportError(ExecError):
    """The remote session could not be created or broke mid-command."""


class PoolClosed(TransportError):
    """The pool was torn down while the request was pending or running."""


class CommandFailed(ExecError):
    """The remote command ran and exited with a nonzero status."""

    def __init__(self, exit_code: int, stderr: str, command: str = "") -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        self.command = command
        super().__init__(f"Command failed with code {exit_code}: {stderr}")


class CommandTimeout(ExecError):
    """The remote command exceeded its allotted time and was terminated."""

    def __init__(self, elapsed_ms: int, command: str) -> None:
        self.elapsed_ms = elapsed_ms
        self.command = command
        super().__init__(f"Command timeout after {elapsed_ms}ms: {command}")


class NoConnectionConfigured(ExecError):
    """No target identity could be resolved from configuration."""
