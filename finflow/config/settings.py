"""
Configuration Management for FinFlow

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every integration (LLM, webhook, WhatsApp) is optional, so each one gets
its own settings class that is only loaded when that integration is used.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local key-value store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINFLOW_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="file",
        pattern="^(file|memory)$",
        description="Store backend: 'file' for a JSON file, 'memory' for ephemeral"
    )
    path: str = Field(
        default="data/local_storage.json",
        description="Path of the JSON file backing the store"
    )

    @field_validator('path')
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand ~ so the path can point into the user's home."""
        return str(Path(v).expanduser())


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (financial advice and trend analysis)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )
    language: str = Field(
        default="Brazilian Portuguese",
        description="Language the advice is written in"
    )


class WebhookSettings(BaseSettings):
    """Settings for the automation (n8n) ingestion endpoint."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    n8n_api_secret_key: Optional[str] = Field(
        default=None,
        description="Shared secret expected in the X-N8N-API-KEY header"
    )


class ApiSettings(BaseSettings):
    """Where the webhook API listens."""

    model_config = SettingsConfigDict(
        env_prefix="FINFLOW_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)


class WhatsAppSettings(BaseSettings):
    """Evolution API (WhatsApp) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EVOLUTION_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: Optional[str] = Field(
        default=None,
        description="Base URL of the Evolution API server"
    )
    instance: Optional[str] = Field(
        default=None,
        description="Evolution API instance name"
    )
    key: Optional[str] = Field(
        default=None,
        description="Evolution API key"
    )
    alert_phone_number: Optional[str] = Field(
        default=None,
        description="Recipient of goal alerts, international format (e.g. 5511999999999)"
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="HTTP timeout for Evolution API calls"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.instance and self.key)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    currency_symbol: str = Field(
        default="R$",
        description="Currency symbol used in messages and exports"
    )
    recent_window_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Size of the 'recent' window fed to the advisor"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def webhook(self) -> WebhookSettings:
        return WebhookSettings()

    @property
    def whatsapp(self) -> WhatsAppSettings:
        return WhatsAppSettings()

    @property
    def api(self) -> ApiSettings:
        return ApiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate which integrations are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries explaining failures. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("app", "api", "storage", "gemini"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    webhook = settings.webhook
    results["webhook"] = bool(webhook.n8n_api_secret_key)
    if not results["webhook"]:
        results["webhook_error"] = "N8N_API_SECRET_KEY is not set"

    whatsapp = settings.whatsapp
    results["whatsapp"] = whatsapp.is_configured
    if not whatsapp.is_configured:
        results["whatsapp_error"] = (
            "EVOLUTION_API_URL, EVOLUTION_API_INSTANCE and EVOLUTION_API_KEY are required"
        )

    return results
