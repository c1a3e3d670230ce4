"""Per-request article generation sessions.

A SessionController drives one client request end to end: it opens the
backend stream, accumulates fragments, re-renders the whole buffer after
every chunk and yields the resulting events. Nothing here is shared
between sessions.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator

import httpx

from endless_wiki.backend import OllamaClient
from endless_wiki.errors import BackendUnavailable
from endless_wiki.render import INTERNAL_BASE, RenderStrategy, render_snapshot

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_BACKEND = "awaiting_backend"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class StreamEvent:
    """A named event pushed to the client: content, error or complete."""
    name: str
    data: dict[str, Any]


@dataclass
class GenerationSession:
    backend_url: str
    model: str
    topic: str
    strategy: str
    cursor: int = 0


class Accumulator:
    """Append-only raw text buffer for one session."""

    def __init__(self) -> None:
        self._text = ""

    def append(self, fragment: str) -> None:
        self._text += fragment

    def current(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._text)


class SessionController:
    """Runs one generation session and turns it into client events.

    States move IDLE -> AWAITING_BACKEND -> STREAMING and end in COMPLETED,
    CANCELLED or FAILED. Every content event carries a complete snapshot
    rendered from the whole buffer, never a delta.
    """

    def __init__(
        self,
        topic: str,
        backend: OllamaClient,
        strategy: RenderStrategy,
        link_base: str = INTERNAL_BASE,
    ):
        """Initialize controller.

        Args:
            topic: Validated, non-empty article topic
            backend: Generation backend client
            strategy: Renderer and prompt style to use
            link_base: Internal article route prefix
        """
        self.session = GenerationSession(
            backend_url=backend.base_url,
            model=backend.model,
            topic=topic,
            strategy=strategy.name,
        )
        self.backend = backend
        self.strategy = strategy
        self.link_base = link_base
        self.buffer = Accumulator()
        self.state = SessionState.IDLE
        self.snapshots_sent = 0

    def snapshot(self) -> str:
        """Render the current buffer from scratch."""
        return render_snapshot(self.strategy, self.buffer.current(), self.link_base)

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Stream the session as events.

        Yields one ``content`` event per non-empty fragment, then either a
        ``complete`` event, or an ``error`` event followed by ``complete``.
        If the consumer goes away (task cancelled or generator closed) the
        backend response is closed, nothing more is yielded and the
        cancellation propagates.

        Yields:
            StreamEvent instances in push order
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError("A session can only be streamed once")

        topic = self.session.topic
        self.state = SessionState.AWAITING_BACKEND
        logger.info(
            f"Generating article '{topic}' using model '{self.session.model}' "
            f"at host '{self.session.backend_url}' ({self.strategy.name} renderer)"
        )

        failure: tuple[str, str] | None = None
        try:
            async with self.backend.stream_generate(self.strategy.build_prompt(topic)) as decoder:
                self.state = SessionState.STREAMING
                async for chunk in decoder:
                    self.session.cursor += 1
                    if not chunk.fragment:
                        continue
                    self.buffer.append(chunk.fragment)
                    self.snapshots_sent += 1
                    yield StreamEvent("content", {"html": self.snapshot()})
        except BackendUnavailable as e:
            failure = ("unavailable", str(e))
        except httpx.TransportError as e:
            failure = ("stream_error", f"Connection to backend lost: {e}")
        except (asyncio.CancelledError, GeneratorExit):
            self.state = SessionState.CANCELLED
            logger.info(f"Article generation cancelled for '{topic}' (client disconnected)")
            raise
        else:
            if decoder.malformed:
                failure = ("malformed", "Backend sent a line that could not be decoded")
            elif not decoder.finished:
                failure = ("truncated", "Generation stream ended before the article was finished")

        if failure is None:
            self.state = SessionState.COMPLETED
            logger.info(
                f"Article '{topic}' complete: {self.session.cursor} chunks, {len(self.buffer)} characters"
            )
        else:
            reason, message = failure
            self.state = SessionState.FAILED
            logger.warning(f"Error generating article '{topic}' ({reason}): {message}")
            yield StreamEvent("error", {"error": "Failed to generate article", "reason": reason})

        yield StreamEvent("complete", {"status": "done"})
