"""Endless Wiki: articles generated on request and streamed as HTML."""

__version__ = "1.0.0"
