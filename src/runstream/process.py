"""Process launching — the single seam that touches the OS."""

import asyncio
import enum
import os
import shlex
import subprocess
from collections.abc import Sequence

from runstream import log
from runstream.errors import LaunchError
from runstream.result import ExecutionResult, ExitStatus


class OutputMode(enum.Enum):
    DISCARD = "discard"
    BUFFER = "buffer"
    STREAM = "stream"


def validate(command: Sequence[str]) -> list[str]:
    """Copy ``command`` into a list, rejecting empty argv."""
    if isinstance(command, str):
        raise TypeError("command must be a sequence of arguments, not a string")
    args = list(command)
    if not args:
        raise ValueError("command must not be empty")
    return args


def inherited_environment() -> dict[str, str]:
    """Snapshot of this process's environment."""
    return dict(os.environ)


def escaped(command: Sequence[str]) -> str:
    return shlex.join(command)


def _redirections(mode: OutputMode, start_new_process_group: bool) -> tuple[int, int]:
    # Nobody ever reads from a process in its own group, so it gets no pipes.
    if start_new_process_group:
        return subprocess.DEVNULL, subprocess.DEVNULL
    if mode is OutputMode.DISCARD:
        # stderr is kept in every mode so failures can report it
        return subprocess.DEVNULL, subprocess.PIPE
    return subprocess.PIPE, subprocess.PIPE


def launch(
    command: Sequence[str],
    environment: dict[str, str] | None = None,
    mode: OutputMode = OutputMode.BUFFER,
    start_new_process_group: bool = False,
) -> subprocess.Popen:
    """Start one OS process. Raises LaunchError if exec fails.

    STREAM mode is served by ``spawn``; here it behaves like BUFFER.
    """
    args = validate(command)
    env = inherited_environment() if environment is None else dict(environment)
    stdout, stderr = _redirections(mode, start_new_process_group)

    log.debug(escaped(args))
    try:
        return subprocess.Popen(
            args,
            env=env,
            stdin=subprocess.DEVNULL if start_new_process_group else None,
            stdout=stdout,
            stderr=stderr,
            start_new_session=start_new_process_group,
        )
    except OSError as e:
        raise LaunchError(args, e.strerror or str(e)) from e


def wait(proc: subprocess.Popen, environment: dict[str, str] | None = None) -> ExecutionResult:
    """Wait for exit, draining whichever pipes the process has."""
    stdout, stderr = proc.communicate()
    result = ExecutionResult(
        command=list(proc.args),
        environment=inherited_environment() if environment is None else dict(environment),
        exit_status=ExitStatus.from_returncode(proc.returncode),
        stdout=stdout,
        stderr=stderr,
    )
    if stdout is not None:
        log.debug(stdout.decode("utf-8", errors="replace"))
    return result


async def spawn(
    command: Sequence[str],
    environment: dict[str, str],
    stdin=None,
    stdout=asyncio.subprocess.PIPE,
    stderr=asyncio.subprocess.PIPE,
) -> asyncio.subprocess.Process:
    """Start one OS process on the running event loop (STREAM mode)."""
    args = validate(command)
    log.debug(escaped(args))
    try:
        return await asyncio.create_subprocess_exec(
            *args,
            env=environment,
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
        )
    except OSError as e:
        raise LaunchError(args, e.strerror or str(e)) from e


async def connect_reader(fd: int) -> tuple[asyncio.StreamReader, asyncio.BaseTransport]:
    """Wrap the read end of an OS pipe we own in a StreamReader.

    The returned transport is ours to close; ``Process.wait()`` never waits on it.
    """
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    transport, _ = await loop.connect_read_pipe(
        lambda: asyncio.StreamReaderProtocol(reader), open(fd, "rb", buffering=0)
    )
    return reader, transport
