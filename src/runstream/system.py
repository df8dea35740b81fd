"""Public operations: run, capture, stream, detach, which, toolchain version."""

import asyncio
import sys
from collections.abc import Sequence

from runstream import config, process, toolchain
from runstream.sink import StandardOutput
from runstream.stream import CollectedOutput, RunStream

WHICH_COMMAND = ["/usr/bin/env", "which"]


def env() -> dict[str, str]:
    """Snapshot of the inherited environment."""
    return process.inherited_environment()


def escaped(command: Sequence[str]) -> str:
    return process.escaped(command)


def run(command: Sequence[str], environment: dict[str, str] | None = None) -> None:
    """Run a command, discarding its output. Raises on failure."""
    proc = process.launch(command, environment, process.OutputMode.DISCARD)
    result = process.wait(proc, environment)
    result.raise_if_errored(config.current().dispatchers)


def capture(command: Sequence[str], environment: dict[str, str] | None = None) -> bytes:
    """Run a command and return its stdout bytes. Raises on failure."""
    proc = process.launch(command, environment, process.OutputMode.BUFFER)
    result = process.wait(proc, environment)
    result.raise_if_errored(config.current().dispatchers)
    return result.stdout


def run_streaming(
    command: Sequence[str],
    environment: dict[str, str] | None = None,
    pipe_to: Sequence[str] | None = None,
) -> RunStream:
    """Stream output events live, optionally through a second command.

    Nothing starts until the returned stream is iterated or started.
    """
    return RunStream(command, environment, pipe_to=pipe_to)


async def run_and_collect_output(
    command: Sequence[str], environment: dict[str, str] | None = None
) -> CollectedOutput:
    return await RunStream(command, environment).collect()


async def _print_events(stream: RunStream) -> None:
    async with stream:
        async for event in stream:
            target = sys.stdout if isinstance(event, StandardOutput) else sys.stderr
            target.buffer.write(event.data)
            target.buffer.flush()


def run_and_print(
    command: Sequence[str],
    environment: dict[str, str] | None = None,
    pipe_to: Sequence[str] | None = None,
) -> None:
    """Stream a run to our own stdout/stderr. Raises on failure.

    Drives its own event loop; call ``run_streaming`` from async code instead.
    """
    asyncio.run(_print_events(RunStream(command, environment, pipe_to=pipe_to)))


def run_detached(command: Sequence[str], environment: dict[str, str] | None = None) -> None:
    """Start a command in its own process group and return without waiting."""
    process.launch(
        command, environment, process.OutputMode.DISCARD, start_new_process_group=True
    )


def which(name: str) -> str:
    return capture(WHICH_COMMAND + [name]).decode("utf-8").strip()


def toolchain_version() -> str:
    return toolchain.toolchain_version()
