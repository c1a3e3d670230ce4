"""Client for the Ollama-compatible text generation backend.

This module provides:
1. Chunk decoding of newline-delimited JSON generation responses
2. Streaming generation requests, one per article session
3. Model pull and reachability checks
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Optional

import httpx

from endless_wiki.config import get_settings
from endless_wiki.errors import BackendUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """One decoded response object from the backend."""
    fragment: str
    done: bool


class ChunkDecoder:
    """Lazily decode NDJSON lines into Chunks.

    Iteration stops after the first chunk marked done, when the input runs
    out, or at the first line that cannot be decoded. Undecodable input is
    treated as end of stream and recorded in ``malformed`` instead of being
    raised.
    """

    def __init__(self, lines: AsyncIterable[str | bytes]):
        """Initialize decoder over a line source.

        Args:
            lines: Async iterable of raw response lines
        """
        self._lines = lines
        self.finished = False
        self.malformed = False

    def __aiter__(self) -> AsyncIterator[Chunk]:
        return self._decode()

    async def _decode(self) -> AsyncIterator[Chunk]:
        async for raw_line in self._lines:
            line = raw_line.decode("utf-8", errors="replace") if isinstance(raw_line, bytes) else raw_line
            if not line.strip():
                continue

            chunk = self._parse(line)
            if chunk is None:
                self.malformed = True
                return

            if chunk.done:
                self.finished = True
            yield chunk
            if chunk.done:
                return

    @staticmethod
    def _parse(line: str) -> Optional[Chunk]:
        try:
            payload = json.loads(line)
        except json.JSONDecodeError:
            logger.warning(f"Stopping on undecodable backend line: {line[:80]!r}")
            return None

        if not isinstance(payload, dict):
            logger.warning(f"Stopping on non-object backend line: {line[:80]!r}")
            return None

        if "error" in payload:
            logger.warning(f"Backend reported an error mid-stream: {payload['error']}")
            return None

        fragment = payload.get("response") or ""
        if not isinstance(fragment, str):
            logger.warning(f"Stopping on non-text fragment: {fragment!r}")
            return None

        return Chunk(fragment=fragment, done=bool(payload.get("done", False)))


class OllamaClient:
    """Talks to one Ollama-compatible backend over a shared connection pool.

    The underlying ``httpx.AsyncClient`` is created lazily and is safe to use
    from many concurrent sessions.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        connect_timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            base_url: Backend base URL, e.g. http://localhost:11434
            model: Model identifier sent with every request
            connect_timeout: Seconds allowed to establish a connection
            transport: Optional httpx transport (used to simulate the backend)
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.connect_timeout = connect_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the pooled HTTP client, creating it on first use."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                # Generation has no deadline and sessions queue for the pool; only connecting is bounded
                timeout=httpx.Timeout(self.connect_timeout, read=None, pool=None),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close pooled connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @asynccontextmanager
    async def stream_generate(self, prompt: str) -> AsyncIterator[ChunkDecoder]:
        """Open one streaming generation request.

        The response is closed when the context exits, including when the
        surrounding task is cancelled, so an abandoned session never keeps
        the upstream generation running.

        Args:
            prompt: Full generation prompt

        Yields:
            ChunkDecoder over the live response body

        Raises:
            BackendUnavailable: If the backend cannot be reached or does not
                answer with HTTP 200
        """
        payload = {"model": self.model, "prompt": prompt, "stream": True}
        request = self.client.build_request("POST", "/api/generate", json=payload)

        try:
            response = await self.client.send(request, stream=True)
        except httpx.TransportError as e:
            raise BackendUnavailable(f"Cannot reach backend at {self.base_url}: {e}") from e

        try:
            if response.status_code != httpx.codes.OK:
                await response.aread()
                raise BackendUnavailable(
                    f"Backend returned HTTP {response.status_code}: {response.text[:200]}",
                    status_code=response.status_code,
                )
            yield ChunkDecoder(response.aiter_lines())
        finally:
            await response.aclose()

    async def pull_model(self) -> bool:
        """Ask the backend to download the configured model.

        Returns:
            True if the backend reports the model ready, False otherwise
        """
        logger.info(f"Ensuring model '{self.model}' is available at '{self.base_url}'")
        try:
            response = await self.client.post(
                "/api/pull",
                json={"name": self.model, "stream": False},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Error pulling model (backend may not be ready yet): {e}")
            return False

        if response.status_code == httpx.codes.OK:
            logger.info(f"Model '{self.model}' is ready")
            return True

        logger.warning(f"Model pull returned status {response.status_code}")
        return False

    async def ping(self) -> bool:
        """Check whether the backend answers at all."""
        try:
            response = await self.client.get("/api/version")
        except httpx.HTTPError:
            return False
        return response.status_code == httpx.codes.OK


# Global instance for singleton pattern
_backend_client: Optional[OllamaClient] = None


def get_backend_client() -> OllamaClient:
    """Get or create the global backend client instance."""
    global _backend_client
    if _backend_client is None:
        settings = get_settings()
        _backend_client = OllamaClient(
            base_url=settings.ollama_host,
            model=settings.ollama_model,
            connect_timeout=settings.connect_timeout,
        )
    return _backend_client
