"""Tests for configuration loading."""

from datetime import date

import pytest
from pydantic import ValidationError

from finflow.config import (
    ApiSettings,
    GeminiSettings,
    StorageSettings,
    WhatsAppSettings,
    get_settings,
    validate_all_settings,
)
from finflow.models import TransactionCreate


class TestSettings:
    """Tests for the per-integration settings classes."""

    def test_defaults(self):
        """Test defaults with an empty environment."""
        settings = get_settings()

        assert settings.storage.backend == "file"
        assert settings.storage.path.endswith("local_storage.json")
        assert settings.api.port == 8000
        assert settings.app.currency_symbol == "R$"
        assert settings.webhook.n8n_api_secret_key is None
        assert settings.whatsapp.is_configured is False

    def test_gemini_requires_key(self):
        """Test that Gemini settings cannot load without an API key."""
        with pytest.raises(ValidationError):
            GeminiSettings()

    def test_environment_overrides(self, monkeypatch):
        """Test that prefixed environment variables are read."""
        monkeypatch.setenv("GEMINI_API_KEY", "g-key")
        monkeypatch.setenv("FINFLOW_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("FINFLOW_API_PORT", "9000")
        monkeypatch.setenv("N8N_API_SECRET_KEY", "s3cret")

        settings = get_settings()

        assert settings.gemini.api_key == "g-key"
        assert settings.storage.backend == "memory"
        assert settings.api.port == 9000
        assert settings.webhook.n8n_api_secret_key == "s3cret"

    def test_dotenv_file(self, tmp_path):
        """Test that a .env file in the working directory is loaded."""
        (tmp_path / ".env").write_text(
            "EVOLUTION_API_URL=https://evo.example.com\n"
            "EVOLUTION_API_INSTANCE=main\n"
            "EVOLUTION_API_KEY=abc\n",
            encoding="utf-8",
        )

        assert WhatsAppSettings().is_configured is True

    def test_invalid_values(self):
        """Test validation of bounded settings."""
        with pytest.raises(ValidationError):
            ApiSettings(port=0)
        with pytest.raises(ValidationError):
            StorageSettings(backend="redis")

    def test_description_limit_is_not_configurable(self, monkeypatch):
        """Test that the fixed 255 character description limit ignores the environment."""
        monkeypatch.setenv("MAX_DESCRIPTION_LENGTH", "10")

        assert not hasattr(get_settings().app, "max_description_length")
        tx = TransactionCreate(
            type="expense",
            description="x" * 255,
            amount=1,
            date=date(2024, 5, 1),
        )
        assert len(tx.description) == 255

    def test_validate_all_settings(self):
        """Test the startup report of configured integrations."""
        results = validate_all_settings()

        assert results["app"] is True
        assert results["storage"] is True
        assert results["gemini"] is False
        assert "gemini_error" in results
        assert results["webhook"] is False
        assert results["whatsapp"] is False
