"""Notification services package."""

from finflow.services.notifications.whatsapp import (
    EvolutionWhatsAppService,
    NotificationError,
    SendMessageRequest,
    SendResult,
    TransientDeliveryError,
)

__all__ = [
    "EvolutionWhatsAppService",
    "NotificationError",
    "SendMessageRequest",
    "SendResult",
    "TransientDeliveryError",
]
