"""Output events and the per-run queue they flow through."""

import asyncio
from dataclasses import dataclass


@dataclass(frozen=True)
class StandardOutput:
    data: bytes


@dataclass(frozen=True)
class StandardError:
    data: bytes


OutputEvent = StandardOutput | StandardError


@dataclass(frozen=True)
class Outcome:
    """Terminal queue item: error is None on success."""

    error: BaseException | None = None


_CLOSED = Outcome()


class OutputSink:
    """Single ordering point for one run.

    Reader tasks push chunks in arrival order; the consumer pulls them with
    ``get``. stderr chunks marked ``record`` are also accumulated so a failure
    can carry them.
    """

    def __init__(self, chunk_size: int = 65536):
        self.chunk_size = chunk_size
        self.recorded_stderr = bytearray()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: OutputEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def finish(self, error: BaseException | None = None) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(Outcome(error))

    def close(self) -> None:
        """Stop delivery and wake any waiting consumer."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def get(self) -> OutputEvent | Outcome:
        return await self._queue.get()

    async def pump(self, reader: asyncio.StreamReader, event_type, record: bool = False) -> None:
        """Forward ``reader`` until EOF. Keeps reading after close so pipes drain."""
        while True:
            chunk = await reader.read(self.chunk_size)
            if not chunk:
                return
            if record:
                self.recorded_stderr.extend(chunk)
            self.emit(event_type(chunk))

    def forward(self, reader: asyncio.StreamReader, event_type, record: bool = False) -> asyncio.Task:
        return asyncio.create_task(self.pump(reader, event_type, record))
