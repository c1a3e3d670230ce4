"""Tests for environment-driven configuration."""

import pytest
from pathlib import Path

# Import the module under test
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from endless_wiki.config import Settings

_ENV_VARS = [
    "OLLAMA_HOST",
    "OLLAMA_MODEL",
    "WIKI_RENDER_MODE",
    "OLLAMA_CONNECT_TIMEOUT",
    "WIKI_PULL_MODEL",
    "HOST",
    "PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test from an environment with no wiki settings."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self):
        """Test that defaults apply when no variables are set."""
        settings = Settings.from_env()

        assert settings.ollama_host == "http://localhost:11434"
        assert settings.ollama_model == "llama2"
        assert settings.render_mode == "markdown"
        assert settings.connect_timeout == 5.0
        assert settings.pull_model is True
        assert settings.port == 8080

    def test_environment_overrides(self, monkeypatch):
        """Test that environment variables override the defaults."""
        monkeypatch.setenv("OLLAMA_HOST", "http://ollama:11434/")
        monkeypatch.setenv("OLLAMA_MODEL", "mistral")
        monkeypatch.setenv("WIKI_RENDER_MODE", "Autolink")
        monkeypatch.setenv("OLLAMA_CONNECT_TIMEOUT", "2.5")
        monkeypatch.setenv("PORT", "9000")

        settings = Settings.from_env()

        assert settings.ollama_host == "http://ollama:11434"
        assert settings.ollama_model == "mistral"
        assert settings.render_mode == "autolink"
        assert settings.connect_timeout == 2.5
        assert settings.port == 9000

    @pytest.mark.parametrize("value", ["0", "false", "No", "off"])
    def test_pull_can_be_disabled(self, monkeypatch, value):
        """Test that falsy values disable the startup pull."""
        monkeypatch.setenv("WIKI_PULL_MODEL", value)
        assert Settings.from_env().pull_model is False

    def test_unknown_render_mode_rejected(self, monkeypatch):
        """Test that an unknown render mode raises ValueError."""
        monkeypatch.setenv("WIKI_RENDER_MODE", "rst")
        with pytest.raises(ValueError):
            Settings.from_env()

    def test_settings_are_frozen(self):
        """Test that settings cannot be reassigned."""
        settings = Settings()
        with pytest.raises(AttributeError):
            settings.ollama_model = "other"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
