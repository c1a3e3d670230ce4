"""FastAPI server for Endless Wiki with SSE streaming.

This module provides:
1. Home page and streaming article pages
2. SSE /stream/{topic} endpoint running one generation session per request
3. Model pull on startup via lifespan
4. Health check and info endpoints
"""

import json
import logging
import re
from contextlib import aclosing, asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from pydantic import BaseModel
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from endless_wiki import __version__
from endless_wiki.backend import get_backend_client
from endless_wiki.config import get_settings
from endless_wiki.errors import ClientInputError
from endless_wiki.pages import render_article_page, render_home_page
from endless_wiki.render import get_strategy
from endless_wiki.session import SessionController, StreamEvent

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

_MAX_TOPIC_LENGTH: int = 256

# Topics are single-line: strip every control character, newlines included
_CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x1f\x7f]")


def _sanitise_topic(topic: str) -> str:
    """Strip control characters and surrounding whitespace from a topic."""
    return _CONTROL_CHAR_PATTERN.sub("", topic).strip()


def validate_topic(topic: str) -> str:
    """Return a topic safe to use in a prompt and as a route segment.

    Raises:
        ClientInputError: If the topic is empty after sanitisation or too long
    """
    clean_topic = _sanitise_topic(topic)
    if not clean_topic:
        raise ClientInputError("Article name is required")
    if len(clean_topic) > _MAX_TOPIC_LENGTH:
        raise ClientInputError(f"Article name must be at most {_MAX_TOPIC_LENGTH} characters")
    return clean_topic


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    backend_reachable: bool
    model: str
    render_mode: str


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Pull the model on startup, release backend connections on shutdown."""
    settings = get_settings()
    backend = get_backend_client()

    logger.info("=" * 60)
    logger.info("Endless Wiki Server Starting")
    logger.info("=" * 60)
    logger.info(f"Backend: {settings.ollama_host}")
    logger.info(f"Model: {settings.ollama_model}")
    logger.info(f"Renderer: {settings.render_mode}")

    if settings.pull_model:
        # A failed pull is logged; articles will fail individually until the backend is ready
        await backend.pull_model()

    logger.info("Server ready!")

    yield

    logger.info("Server shutting down...")
    await backend.aclose()


# Create FastAPI app with lifespan
app = FastAPI(
    title="Endless Wiki",
    description="Articles generated on request and streamed as HTML over SSE",
    version=__version__,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["Content-Type"],
)

_SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    # Pages carry their script and style inline
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data:; "
        "connect-src 'self'; "
        "frame-ancestors 'none';"
    ),
}


class SecurityHeadersMiddleware:
    """Inject security response headers on every response.

    Plain ASGI so streaming responses pass through untouched and a client
    disconnect still cancels the session task underneath.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in _SECURITY_HEADERS.items():
                    headers[name] = value
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(ClientInputError)
async def client_input_error_handler(request: Request, exc: ClientInputError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def format_sse(event: StreamEvent) -> str:
    """Frame an event for the wire; JSON keeps newlines off the data line."""
    return f"event: {event.name}\ndata: {json.dumps(event.data)}\n\n"


async def generate_sse_stream(controller: SessionController) -> AsyncGenerator[str, None]:
    """Generate SSE frames for one session, one frame per event.

    Args:
        controller: Fresh session controller for this request

    Yields:
        SSE-formatted strings in the order the session produced them
    """
    # Closing this stream closes the session, which closes the backend response
    async with aclosing(controller.events()) as events:
        async for event in events:
            yield format_sse(event)


# Routes
@app.get("/", response_class=HTMLResponse)
async def root():
    """Serve the home page."""
    return render_home_page()


@app.get("/wiki/{topic:path}", response_class=HTMLResponse)
async def wiki_page(topic: str):
    """Serve the article shell that streams the article in."""
    return render_article_page(validate_topic(topic))


@app.get("/stream/{topic:path}")
async def stream_article(topic: str):
    """Generate an article with SSE streaming.

    Returns a streaming response of ``content`` snapshots followed by
    ``complete`` (or ``error`` then ``complete``). Disconnecting aborts the
    backend request.
    """
    clean_topic = validate_topic(topic)
    settings = get_settings()

    controller = SessionController(
        topic=clean_topic,
        backend=get_backend_client(),
        strategy=get_strategy(settings.render_mode),
    )

    return StreamingResponse(
        generate_sse_stream(controller),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Check server and backend status."""
    settings = get_settings()
    reachable = await get_backend_client().ping()

    return HealthResponse(
        status="healthy" if reachable else "backend_unreachable",
        backend_reachable=reachable,
        model=settings.ollama_model,
        render_mode=settings.render_mode,
    )


@app.get("/api/info")
async def get_info():
    """Get server and configuration information."""
    settings = get_settings()

    return {
        "server": "Endless Wiki",
        "version": __version__,
        "backend": {
            "host": settings.ollama_host,
            "model": settings.ollama_model,
        },
        "render_mode": settings.render_mode,
        "endpoints": {
            "/": "Home page",
            "/wiki/{topic}": "Article page (HTML)",
            "/stream/{topic}": "Article generation (GET, SSE streaming)",
            "/health": "Health check",
            "/api/info": "Server information",
        },
    }


def main():
    """Run the server."""
    import uvicorn

    settings = get_settings()
    logger.info(f"Starting server on {settings.host}:{settings.port}")

    uvicorn.run(
        "endless_wiki.server:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
