"""Configuration package."""

from finflow.config.settings import (
    ApiSettings,
    AppSettings,
    GeminiSettings,
    Settings,
    StorageSettings,
    WebhookSettings,
    WhatsAppSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ApiSettings",
    "AppSettings",
    "GeminiSettings",
    "Settings",
    "StorageSettings",
    "WebhookSettings",
    "WhatsAppSettings",
    "get_settings",
    "validate_all_settings",
]
