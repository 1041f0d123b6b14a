"""Tests for cli/streaming.py response handlers."""

from __future__ import annotations

import asyncio

import pytest

from magenta.cli.queued import QueuedIO
from magenta.cli.streaming import ImmediateWriter, PacedWriter
from magenta.cli.styles import OutputStyle
from magenta.security.filters import SecurityFilter


class _RecordingIO(QueuedIO):
    """QueuedIO that also records the color of every print."""

    def __init__(self) -> None:
        super().__init__()
        self.colors: list[object] = []

    def print(self, text, color=None) -> None:
        self.colors.append(color)
        super().print(text, color)


class _BrokenSinkIO(QueuedIO):
    """QueuedIO whose first print fails."""

    def __init__(self) -> None:
        super().__init__()
        self.failed = False

    def print(self, text, color=None) -> None:
        if not self.failed:
            self.failed = True
            raise OSError("sink broken")
        super().print(text, color)


class TestImmediateWriter:
    @pytest.mark.asyncio
    async def test_buffer_is_concatenation(self) -> None:
        io = QueuedIO()
        w = ImmediateWriter(io)
        for token in ["Hel", "lo", ", ", "world"]:
            w.write(token)
        await w.complete()
        assert w.get_buffer() == "Hello, world"
        assert io.read_output() == "Hello, world\n"

    @pytest.mark.asyncio
    async def test_tokens_printed_immediately(self) -> None:
        io = QueuedIO()
        w = ImmediateWriter(io)
        w.write("abc")
        assert io.peek_output() == "abc"

    @pytest.mark.asyncio
    async def test_uses_color(self) -> None:
        io = _RecordingIO()
        w = ImmediateWriter(io, 5)
        w.write("x")
        assert io.colors == [5]

    @pytest.mark.asyncio
    async def test_default_color_is_agent_style(self) -> None:
        io = _RecordingIO()
        ImmediateWriter(io).write("x")
        assert io.colors == [OutputStyle.AGENT]

    @pytest.mark.asyncio
    async def test_error_line(self) -> None:
        io = QueuedIO()
        w = ImmediateWriter(io)
        w.write("partial")
        await w.error(RuntimeError("boom"))
        assert io.read_output() == "partial\nError: boom\n"
        assert w.finished

    @pytest.mark.asyncio
    async def test_buffer_survives_complete_until_next_write(self) -> None:
        w = ImmediateWriter(QueuedIO())
        w.write("first")
        await w.complete()
        assert w.get_buffer() == "first"
        w.write("second")
        assert w.get_buffer() == "second"

    @pytest.mark.asyncio
    async def test_reset(self) -> None:
        w = ImmediateWriter(QueuedIO())
        w.write("x")
        w.reset()
        assert w.get_buffer() == ""
        assert not w.finished

    @pytest.mark.asyncio
    async def test_output_passes_through_filter(self) -> None:
        io = QueuedIO(SecurityFilter(output_filter=str.upper))
        w = ImmediateWriter(io)
        w.write("abc")
        await w.complete()
        assert w.get_buffer() == "abc"
        assert io.read_output() == "ABC\n"


class TestPacedWriter:
    @pytest.mark.asyncio
    async def test_buffer_and_output_in_order(self) -> None:
        io = QueuedIO()
        w = PacedWriter(io, None, 1)
        tokens = ["The ", "quick ", "brown ", "fox"]
        for token in tokens:
            w.write(token)
        await w.complete()
        assert w.get_buffer() == "".join(tokens)
        assert io.read_output() == "The quick brown fox\n"

    @pytest.mark.asyncio
    async def test_one_character_per_print(self) -> None:
        io = _RecordingIO()
        w = PacedWriter(io, 4, 1)
        w.write("abc")
        await w.complete()
        # three characters plus the trailing newline
        assert io.colors[:3] == [4, 4, 4]
        assert len(io.colors) == 4

    @pytest.mark.asyncio
    async def test_write_does_not_block(self) -> None:
        io = QueuedIO()
        w = PacedWriter(io, None, 50)
        w.write("a long token that would take a while")
        assert io.peek_output() == ""
        assert w.delivering
        w.reset()
        await asyncio.sleep(0)

    @pytest.mark.asyncio
    async def test_interleaved_writes_keep_order(self) -> None:
        io = QueuedIO()
        w = PacedWriter(io, None, 1)
        expected = []
        for i in range(20):
            token = f"{i},"
            expected.append(token)
            w.write(token)
            if i % 3 == 0:
                await asyncio.sleep(0.002)
        await w.complete()
        assert io.read_output() == "".join(expected) + "\n"

    @pytest.mark.asyncio
    async def test_state_is_fresh_after_complete(self) -> None:
        io = QueuedIO()
        w = PacedWriter(io, None, 1)
        w.write("one")
        await w.complete()
        assert not w.delivering
        assert w.finished
        w.write("two")
        await w.complete()
        assert w.get_buffer() == "two"
        assert io.read_output() == "one\ntwo\n"

    @pytest.mark.asyncio
    async def test_complete_without_writes(self) -> None:
        io = QueuedIO()
        w = PacedWriter(io, None, 1)
        await w.complete()
        assert io.read_output() == "\n"
        assert w.get_buffer() == ""

    @pytest.mark.asyncio
    async def test_error_drains_then_reports(self) -> None:
        io = QueuedIO()
        w = PacedWriter(io, None, 1)
        w.write("part")
        await w.error(ValueError("lost connection"))
        assert io.read_output() == "part\nError: lost connection\n"
        assert not w.delivering

    @pytest.mark.asyncio
    async def test_cancel_during_drain_cleans_up(self) -> None:
        io = QueuedIO()
        w = PacedWriter(io, None, 20)
        w.write("x" * 100)
        task = w._task
        waiter = asyncio.create_task(w.complete())
        await asyncio.sleep(0.05)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert task is not None and task.done()
        assert not w.delivering
        assert len(io.read_output()) < 100

    @pytest.mark.asyncio
    async def test_reset_cancels_delivery(self) -> None:
        io = QueuedIO()
        w = PacedWriter(io, None, 20)
        w.write("abcdef")
        task = w._task
        w.reset()
        await asyncio.sleep(0)
        assert task is not None and task.cancelled()
        assert w.get_buffer() == ""

    @pytest.mark.asyncio
    async def test_reset_pipeline_never_prints(self) -> None:
        io = QueuedIO()
        w = PacedWriter(io, None, 1)
        w.write("abc")
        w.reset()
        stale = asyncio.Queue()
        stale.put_nowait("late")
        done = asyncio.Event()
        done.set()
        await w._deliver(stale, done)
        assert io.read_output() == ""

    @pytest.mark.asyncio
    async def test_print_failure_surfaces_from_complete(self) -> None:
        io = _BrokenSinkIO()
        w = PacedWriter(io, None, 1)
        w.write("abc")
        with pytest.raises(OSError, match="sink broken"):
            await w.complete()
        assert w.finished
        assert not w.delivering
        w.write("ok")
        await w.complete()
        assert io.read_output() == "ok\n"
