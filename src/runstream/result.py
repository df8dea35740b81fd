"""Turn a finished process into success or a typed ExecutionError."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from runstream.errors import ExecutionError, SignalledError, TerminatedError

TERMINATED = "terminated"
SIGNALLED = "signalled"


@dataclass(frozen=True)
class ExitStatus:
    kind: str
    code: int

    @classmethod
    def terminated(cls, code: int) -> "ExitStatus":
        return cls(TERMINATED, code)

    @classmethod
    def signalled(cls, code: int) -> "ExitStatus":
        return cls(SIGNALLED, code)

    @classmethod
    def from_returncode(cls, returncode: int) -> "ExitStatus":
        """subprocess reports death by signal N as returncode -N."""
        if returncode < 0:
            return cls.signalled(-returncode)
        return cls.terminated(returncode)

    @property
    def ok(self) -> bool:
        return self.kind == TERMINATED and self.code == 0


@dataclass(frozen=True)
class ExecutionResult:
    """Terminal state of one run.

    stdout/stderr are None when that stream was not captured.
    """

    command: list[str]
    environment: dict[str, str]
    exit_status: ExitStatus
    stdout: bytes | None = None
    stderr: bytes | None = None

    def error(self, dispatchers: Iterable[str] = ()) -> ExecutionError | None:
        return translate(
            self.exit_status, self.stderr or b"", command_name(self.command, dispatchers)
        )

    def raise_if_errored(self, dispatchers: Iterable[str] = ()) -> None:
        error = self.error(dispatchers)
        if error is not None:
            raise error


def command_name(command: Sequence[str], dispatchers: Iterable[str] = ()) -> str:
    """Name of the tool to report for ``command``.

    When argv[0] is a dispatcher (xcrun, env, ...), the real tool is argv[1].
    """
    if len(command) > 1 and command[0] in set(dispatchers):
        return command[1]
    return command[0]


def translate(exit_status: ExitStatus, stderr: bytes, name: str) -> ExecutionError | None:
    """Return None on a clean exit, otherwise the matching error.

    Any signal counts as a failure, benign ones included.
    """
    if exit_status.ok:
        return None
    if exit_status.kind == SIGNALLED:
        return SignalledError(name, exit_status.code, stderr)
    return TerminatedError(name, exit_status.code, stderr)
