"""Runtime configuration read from environment variables."""

import os
from dataclasses import dataclass

RENDER_MODES: tuple[str, ...] = ("markdown", "sections", "autolink")

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Process-wide settings. Read once at startup, never mutated."""

    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama2"
    render_mode: str = "markdown"
    connect_timeout: float = 5.0
    pull_model: bool = True
    host: str = "127.0.0.1"
    port: int = 8080

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment, falling back to defaults.

        Raises:
            ValueError: If WIKI_RENDER_MODE names an unknown renderer.
        """
        render_mode = os.environ.get("WIKI_RENDER_MODE", "markdown").strip().lower()
        if render_mode not in RENDER_MODES:
            raise ValueError(
                f"Unknown WIKI_RENDER_MODE {render_mode!r}; expected one of {', '.join(RENDER_MODES)}"
            )

        return cls(
            ollama_host=os.environ.get("OLLAMA_HOST", "http://localhost:11434").rstrip("/"),
            ollama_model=os.environ.get("OLLAMA_MODEL", "llama2"),
            render_mode=render_mode,
            connect_timeout=float(os.environ.get("OLLAMA_CONNECT_TIMEOUT", 5.0)),
            pull_model=os.environ.get("WIKI_PULL_MODEL", "1").strip().lower() not in _FALSE_VALUES,
            host=os.environ.get("HOST", "127.0.0.1"),
            port=int(os.environ.get("PORT", 8080)),
        )


# Global instance for singleton pattern
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
