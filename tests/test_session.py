"""Tests for the session controller.

These tests verify:
1. Accumulator append-only behavior
2. One content snapshot per non-empty fragment, in order
3. Completion, failure and truncation events
4. Cancellation closes the backend response and emits no terminal event
"""

import asyncio
import json

import httpx
import pytest
from pathlib import Path

# Import the module under test
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from endless_wiki.backend import OllamaClient
from endless_wiki.render import get_strategy, render_snapshot
from endless_wiki.session import Accumulator, SessionController, SessionState, StreamEvent


def _line(fragment: str, done: bool = False) -> bytes:
    return json.dumps({"response": fragment, "done": done}).encode("utf-8") + b"\n"


class ScriptedStream(httpx.AsyncByteStream):
    """Backend response body that records whether it was closed."""

    def __init__(self, lines, hang: bool = False, error: Exception | None = None):
        self.lines = lines
        self.hang = hang
        self.error = error
        self.closed = False
        self.lines_sent = 0

    async def __aiter__(self):
        for line in self.lines:
            self.lines_sent += 1
            yield line
        if self.error is not None:
            raise self.error
        if self.hang:
            # Simulate a backend still generating
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


def _controller(stream: ScriptedStream | None = None, handler=None, strategy: str = "sections") -> SessionController:
    if handler is None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, stream=stream)

    backend = OllamaClient("http://ollama.test", "llama2", transport=httpx.MockTransport(handler))
    return SessionController("Ancient Rome", backend=backend, strategy=get_strategy(strategy))


def _run(controller: SessionController) -> list[StreamEvent]:
    async def collect():
        return [event async for event in controller.events()]

    return asyncio.run(collect())


class TestAccumulator:
    """Tests for the raw text buffer."""

    def test_starts_empty(self):
        """Test that a new accumulator is empty."""
        buffer = Accumulator()
        assert buffer.current() == ""
        assert len(buffer) == 0

    def test_append_concatenates_in_order(self):
        """Test that fragments are concatenated in order."""
        buffer = Accumulator()
        for fragment in ["Ancient ", "Rome", " was"]:
            buffer.append(fragment)

        assert buffer.current() == "Ancient Rome was"
        assert len(buffer) == len("Ancient Rome was")


class TestSessionCompletion:
    """Tests for sessions that run to completion."""

    def test_snapshot_per_chunk_then_terminal_event(self):
        """Test that each chunk yields a snapshot followed by one complete."""
        stream = ScriptedStream([
            _line("Ancient Rome was "),
            _line("a civilization. "),
            _line("(done)", done=True),
        ])
        controller = _controller(stream)

        events = _run(controller)

        assert [e.name for e in events] == ["content", "content", "content", "complete"]
        assert controller.state is SessionState.COMPLETED
        assert controller.snapshots_sent == 3
        assert stream.closed is True

    def test_snapshots_render_accumulated_prefix(self):
        """Test that each snapshot renders the whole prefix so far."""
        fragments = ["Ancient Rome was ", "a civilization. ", "(done)"]
        stream = ScriptedStream([_line(f, done=(i == 2)) for i, f in enumerate(fragments)])
        controller = _controller(stream)

        events = _run(controller)

        strategy = get_strategy("sections")
        for i, event in enumerate(events[:3]):
            prefix = "".join(fragments[: i + 1])
            assert event.data == {"html": render_snapshot(strategy, prefix)}
        assert "Ancient Rome was a civilization. (done)" in events[2].data["html"]

    def test_empty_fragments_are_not_pushed(self):
        """Test that empty fragments produce no snapshot."""
        stream = ScriptedStream([_line("Rome"), _line(""), _line("", done=True)])
        controller = _controller(stream)

        events = _run(controller)

        assert [e.name for e in events] == ["content", "complete"]
        assert controller.session.cursor == 3

    @pytest.mark.parametrize("n", [1, 4, 10])
    def test_exactly_one_terminal_event_after_nth_snapshot(self, n):
        """Test that N chunks give N snapshots and one terminal event."""
        lines = [_line(f"word{i} ", done=(i == n - 1)) for i in range(n)]
        events = _run(_controller(ScriptedStream(lines)))

        assert [e.name for e in events] == ["content"] * n + ["complete"]
        assert events[-1].data == {"status": "done"}

    def test_prompt_uses_strategy_template(self):
        """Test that the prompt comes from the strategy template."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, stream=ScriptedStream([_line("x", done=True)]))

        _run(_controller(handler=handler, strategy="markdown"))

        assert seen[0]["prompt"] == get_strategy("markdown").build_prompt("Ancient Rome")
        assert seen[0]["stream"] is True
        assert seen[0]["model"] == "llama2"

    def test_session_records_backend_and_topic(self):
        """Test that the session records backend, model and topic."""
        controller = _controller(ScriptedStream([]))

        assert controller.session.backend_url == "http://ollama.test"
        assert controller.session.model == "llama2"
        assert controller.session.topic == "Ancient Rome"
        assert controller.session.strategy == "sections"
        assert controller.state is SessionState.IDLE

    def test_session_can_only_stream_once(self):
        """Test that a session cannot be streamed twice."""
        controller = _controller(ScriptedStream([_line("x", done=True)]))
        _run(controller)

        with pytest.raises(RuntimeError):
            _run(controller)


class TestSessionFailure:
    """Tests for sessions that fail."""

    def test_backend_unreachable(self):
        """Test that an unreachable backend fails the session."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        controller = _controller(handler=handler)
        events = _run(controller)

        assert [e.name for e in events] == ["error", "complete"]
        assert events[0].data["reason"] == "unavailable"
        assert controller.state is SessionState.FAILED

    def test_backend_error_status(self):
        """Test that an error status fails the session."""
        controller = _controller(handler=lambda request: httpx.Response(500, text="boom"))
        events = _run(controller)

        assert [e.name for e in events] == ["error", "complete"]
        assert controller.state is SessionState.FAILED

    def test_stream_ending_without_done_is_truncated(self):
        """Test that a stream ending without done is reported truncated."""
        controller = _controller(ScriptedStream([_line("Ancient "), _line("Rome")]))
        events = _run(controller)

        assert [e.name for e in events] == ["content", "content", "error", "complete"]
        assert events[2].data["reason"] == "truncated"
        assert controller.state is SessionState.FAILED

    def test_malformed_chunk_keeps_content_already_shown(self):
        """Test that a malformed chunk fails without losing shown content."""
        stream = ScriptedStream([_line("Ancient Rome"), b'{"response": "bro\n', _line("never", done=True)])
        controller = _controller(stream)
        events = _run(controller)

        assert [e.name for e in events] == ["content", "error", "complete"]
        assert "Ancient Rome" in events[0].data["html"]
        assert events[1].data["reason"] == "malformed"
        assert controller.buffer.current() == "Ancient Rome"
        assert stream.closed is True

    def test_transport_error_mid_stream(self):
        """Test that a dropped connection mid-stream is reported."""
        stream = ScriptedStream([_line("Ancient")], error=httpx.ReadError("connection reset"))
        controller = _controller(stream)
        events = _run(controller)

        assert [e.name for e in events] == ["content", "error", "complete"]
        assert events[1].data["reason"] == "stream_error"
        assert controller.state is SessionState.FAILED


class TestSessionCancellation:
    """Tests for client disconnects."""

    def test_closing_event_stream_aborts_backend(self):
        """Test that closing the event stream closes the backend response."""
        stream = ScriptedStream([_line("Ancient "), _line("Rome "), _line("was", done=True)])
        controller = _controller(stream)

        async def run():
            events = controller.events()
            first = await events.__anext__()
            await events.aclose()
            return first

        first = asyncio.run(run())

        assert first.name == "content"
        assert stream.closed is True
        assert controller.state is SessionState.CANCELLED

    def test_cancelling_task_aborts_backend_without_terminal_event(self):
        """Test that cancelling the task closes the backend without a terminal event."""
        stream = ScriptedStream([_line("Ancient Rome")], hang=True)
        controller = _controller(stream)
        received: list[StreamEvent] = []

        async def run():
            first_event = asyncio.Event()

            async def consume():
                async for event in controller.events():
                    received.append(event)
                    first_event.set()

            task = asyncio.create_task(consume())
            await first_event.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())

        assert [e.name for e in received] == ["content"]
        assert stream.closed is True
        assert controller.state is SessionState.CANCELLED


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
