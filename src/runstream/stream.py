"""RunStream — asynchronous, cancellable view over one run.

A run is one command, or two commands where the first one's stdout is wired
straight into the second one's stdin. Events from every readable pipe go
through one OutputSink, so per-stream order is preserved. The first process's
exit status decides success; the second one's exit code is only logged.

The run owns the read end of every pipe it consumes, so ``Process.wait()``
returns when a process exits even if a grandchild still holds its output.
"""

import asyncio
import contextlib
import os
from collections.abc import Sequence
from dataclasses import dataclass

from runstream import config, log, process
from runstream.errors import LaunchError
from runstream.result import ExecutionResult, ExitStatus
from runstream.sink import Outcome, OutputEvent, OutputSink, StandardError, StandardOutput


@dataclass(frozen=True)
class CollectedOutput:
    standard_output: str
    standard_error: str


class RunStream:
    """Async iterator of OutputEvent for one run.

    Nothing is launched until the first ``__anext__`` (or ``start``). The
    iterator ends normally on success and raises the translated
    ExecutionError on failure, exactly once. ``cancel`` kills the run.

    A piped run finishes only after the second process has also exited and
    its output has drained, even though only the first process's exit
    status decides the outcome. A second command that ignores its stdin
    (``printf abc | sleep 3``) therefore keeps the run open until it exits.

    Usage::

        async with RunStream(["make"]) as run:
            async for event in run:
                ...
    """

    def __init__(
        self,
        command: Sequence[str],
        environment: dict[str, str] | None = None,
        pipe_to: Sequence[str] | None = None,
        settings: config.Settings | None = None,
    ):
        self.command = process.validate(command)
        self.pipe_to = process.validate(pipe_to) if pipe_to is not None else None
        self.environment = (
            process.inherited_environment() if environment is None else dict(environment)
        )
        self._settings = settings or config.current()
        self._sink = OutputSink(self._settings.chunk_size)
        self._processes: list[asyncio.subprocess.Process] = []
        self._readers: list[asyncio.Task] = []
        self._transports: list[asyncio.BaseTransport] = []
        self._supervisor: asyncio.Task | None = None
        self._finished = False
        self._cancelled = False

    @property
    def pids(self) -> list[int]:
        return [p.pid for p in self._processes]

    @property
    def finished(self) -> bool:
        return self._finished

    async def start(self) -> "RunStream":
        """Launch the process(es). Raises LaunchError if either can't start."""
        if self._supervisor is not None or self._finished:
            return self
        try:
            if self.pipe_to is None:
                await self._start_single()
            else:
                await self._start_piped()
        except LaunchError:
            self._finished = True
            self._sink.close()
            raise
        self._supervisor = asyncio.create_task(self._supervise())
        return self

    async def _forward(self, fd: int, event_type, record: bool = False) -> None:
        reader, transport = await process.connect_reader(fd)
        self._transports.append(transport)
        self._readers.append(self._sink.forward(reader, event_type, record))

    async def _start_single(self) -> None:
        out_r, out_w = os.pipe()
        err_r, err_w = os.pipe()
        try:
            proc = await process.spawn(self.command, self.environment, stdout=out_w, stderr=err_w)
        except LaunchError:
            os.close(out_r)
            os.close(err_r)
            raise
        finally:
            os.close(out_w)
            os.close(err_w)
        self._processes.append(proc)

        await self._forward(out_r, StandardOutput)
        await self._forward(err_r, StandardError, record=True)

    async def _start_piped(self) -> None:
        link_r, link_w = os.pipe()
        err1_r, err1_w = os.pipe()
        out2_r, out2_w = os.pipe()
        err2_r, err2_w = os.pipe()
        try:
            first = await process.spawn(self.command, self.environment, stdout=link_w, stderr=err1_w)
            self._processes.append(first)
            try:
                second = await process.spawn(
                    self.pipe_to, self.environment, stdin=link_r, stdout=out2_w, stderr=err2_w
                )
            except LaunchError:
                first.kill()
                await first.wait()
                raise
            self._processes.append(second)
        except LaunchError:
            for fd in (err1_r, out2_r, err2_r):
                os.close(fd)
            raise
        finally:
            # Children hold their own copies; ours must go so EOF can propagate
            for fd in (link_r, link_w, err1_w, out2_w, err2_w):
                os.close(fd)

        await self._forward(err1_r, StandardError, record=True)
        await self._forward(out2_r, StandardOutput)
        await self._forward(err2_r, StandardError)

    async def _supervise(self) -> None:
        try:
            error = await self._wait_for_exit()
        except Exception as e:
            error = e
        self._sink.finish(error)

    async def _wait_for_exit(self) -> BaseException | None:
        primary = self._processes[0]
        returncode = await primary.wait()

        # Drain what's left, including the second process's output
        await asyncio.wait(self._readers)
        for task in self._readers:
            task.result()

        for proc in self._processes[1:]:
            code = await proc.wait()
            log.debug(f"'{self.pipe_to[0]}' exited with {code} (ignored)")

        result = ExecutionResult(
            command=self.command,
            environment=self.environment,
            exit_status=ExitStatus.from_returncode(returncode),
            stderr=bytes(self._sink.recorded_stderr),
        )
        return result.error(self._settings.dispatchers)

    def __aiter__(self) -> "RunStream":
        return self

    async def __anext__(self) -> OutputEvent:
        if self._finished:
            raise StopAsyncIteration
        await self.start()
        item = await self._sink.get()
        if isinstance(item, Outcome):
            self._finished = True
            if item.error is not None:
                raise item.error
            raise StopAsyncIteration
        return item

    async def wait(self) -> None:
        """Consume every event; return on success, raise on failure."""
        async for _ in self:
            pass

    async def collect(self) -> CollectedOutput:
        stdout = bytearray()
        stderr = bytearray()
        async for event in self:
            if isinstance(event, StandardOutput):
                stdout.extend(event.data)
            else:
                stderr.extend(event.data)
        return CollectedOutput(
            standard_output=stdout.decode("utf-8", errors="replace"),
            standard_error=stderr.decode("utf-8", errors="replace"),
        )

    async def _reap(self, proc: asyncio.subprocess.Process, kill: bool) -> None:
        """Wait up to ``cancel_grace`` for ``proc``; SIGKILL it if asked or if it lingers."""
        grace = self._settings.cancel_grace
        if kill and proc.returncode is None:
            log.debug(f"killing pid {proc.pid}")
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
        try:
            await asyncio.wait_for(proc.wait(), timeout=grace)
        except asyncio.TimeoutError:
            log.debug(f"killing pid {proc.pid}")
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await asyncio.wait_for(proc.wait(), timeout=grace)

    async def cancel(self) -> None:
        """Stop delivery, kill the run, and release its pipes.

        Only the first process gets SIGKILL; the second normally exits once
        its stdin closes and is killed only if it outlives ``cancel_grace``.
        Readers still open after ``cancel_grace`` (a grandchild holding the
        pipe) are cancelled and their pipes closed, so cancel always returns
        within a few multiples of ``cancel_grace``.
        """
        if self._cancelled:
            return
        self._cancelled = True
        self._finished = True
        self._sink.close()

        if self._supervisor is not None:
            self._supervisor.cancel()
            await asyncio.wait([self._supervisor])

        if not self._processes:
            return

        try:
            await self._reap(self._processes[0], kill=True)
            for proc in self._processes[1:]:
                await self._reap(proc, kill=False)
        finally:
            await self._close_readers()

    async def _close_readers(self) -> None:
        if self._readers:
            _, pending = await asyncio.wait(self._readers, timeout=self._settings.cancel_grace)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.wait(pending)
        for transport in self._transports:
            transport.close()
        # Transports drop their fds in a call_soon callback; let it run
        await asyncio.sleep(0)

    async def __aenter__(self) -> "RunStream":
        return await self.start()

    async def __aexit__(self, *args) -> None:
        await self.cancel()
