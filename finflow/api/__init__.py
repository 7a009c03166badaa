"""HTTP API package (automation webhook)."""

from finflow.api.webhook import WEBHOOK_PATH, WebhookTransactionIn, create_app

__all__ = ["WEBHOOK_PATH", "WebhookTransactionIn", "create_app"]
