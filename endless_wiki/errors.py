"""Exceptions raised by the wiki service.

Malformed backend output is deliberately absent: the chunk decoder stops
and flags it instead of raising. Client disconnects surface as asyncio
cancellation, not as an exception of ours.
"""


class WikiError(Exception):
    """Base class for wiki service errors."""


class ClientInputError(WikiError):
    """The requested topic is missing or unusable. Maps to HTTP 400."""


class BackendUnavailable(WikiError):
    """The generation backend could not be reached or refused the request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
