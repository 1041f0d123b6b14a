"""Response handlers: render a model's token stream through an I/O context."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from .styles import ColorTag, OutputStyle

if TYPE_CHECKING:
    from .io_context import IOContext

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.05  # seconds the delivery task waits before re-checking "done"


class ResponseHandler:
    """Append-only token buffer with a completion/error terminal signal.

    ``write`` never blocks. The buffer survives ``complete``/``error`` so the
    caller can read the full response, and is cleared by the next ``write``.
    """

    def __init__(self, io: IOContext, color: ColorTag | None = None) -> None:
        self._io = io
        self._color: ColorTag | OutputStyle = color if color is not None else OutputStyle.AGENT
        self._buffer: list[str] = []
        self._finished = False

    @property
    def io(self) -> IOContext:
        return self._io

    @property
    def finished(self) -> bool:
        return self._finished

    def get_buffer(self) -> str:
        return "".join(self._buffer)

    def write(self, token: str) -> None:
        if self._finished:
            self._buffer.clear()
            self._finished = False
        self._buffer.append(token)
        self._emit(token)

    async def complete(self) -> None:
        raise NotImplementedError

    async def error(self, exc: BaseException) -> None:
        raise NotImplementedError

    def reset(self) -> None:
        self._buffer.clear()
        self._finished = False

    def _emit(self, token: str) -> None:
        raise NotImplementedError

    def _print_error(self, exc: BaseException) -> None:
        self._io.println(f"Error: {exc}", OutputStyle.ERROR)


class ImmediateWriter(ResponseHandler):
    """Prints each token as soon as it is written."""

    def _emit(self, token: str) -> None:
        self._io.print(token, self._color)

    async def complete(self) -> None:
        self._io.println()
        self._finished = True

    async def error(self, exc: BaseException) -> None:
        self._io.println()
        self._print_error(exc)
        self._finished = True


class PacedWriter(ResponseHandler):
    """Prints one character at a time with a fixed delay between characters.

    Tokens go onto an unbounded queue drained by a delivery task that is
    started on the first write of each generation. While the task runs the
    writer is registered on its context, so an approval prompt can wait for
    the queued characters with ``flush`` and hold delivery until it is done.
    """

    def __init__(self, io: IOContext, color: ColorTag | None = None, delay_ms: int = 0) -> None:
        super().__init__(io, color)
        self._delay_ms = max(0, delay_ms)
        self._delay = self._delay_ms / 1000
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._done = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._task: asyncio.Task[None] | None = None

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    @property
    def delivering(self) -> bool:
        return self._task is not None and not self._task.done()

    def _emit(self, token: str) -> None:
        self._idle.clear()
        self._queue.put_nowait(token)
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._deliver(self._queue, self._done))
            self._io.track_response(self)

    async def _deliver(self, queue: asyncio.Queue[str], done: asyncio.Event) -> None:
        while not (done.is_set() and queue.empty()):
            try:
                token = await asyncio.wait_for(queue.get(), _POLL_INTERVAL)
            except asyncio.TimeoutError:
                continue
            for ch in token:
                await self._io.wait_output_ready()
                # a reset pipeline never prints again
                if queue is not self._queue:
                    return
                self._io.print(ch, self._color)
                await asyncio.sleep(self._delay)
            if queue.empty():
                self._idle.set()
        await self._io.wait_output_ready()
        if queue is self._queue:
            self._io.println()

    async def flush(self) -> None:
        """Wait until every character written so far has been printed."""
        task = self._task
        if task is None or task.done():
            return
        idle = asyncio.ensure_future(self._idle.wait())
        try:
            await asyncio.wait({idle, task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            idle.cancel()

    async def complete(self) -> None:
        await self._drain()

    async def error(self, exc: BaseException) -> None:
        await self._drain()
        self._print_error(exc)

    async def _drain(self) -> None:
        task = self._task
        self._done.set()
        if task is None:
            self._io.println()
            self._finished = True
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            logger.debug("Paced output cancelled with %d tokens queued", self._queue.qsize())
            raise
        finally:
            self._new_pipeline()
            self._finished = True

    def _new_pipeline(self) -> None:
        self._io.untrack_response(self)
        self._queue = asyncio.Queue()
        self._done = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._task = None

    def reset(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._new_pipeline()
        super().reset()
