"""
WhatsApp Notifications via Evolution API

DESIGN DECISION: Notifications are best effort. A missing configuration,
an HTTP error or a network failure is reported back as a failed
SendResult; nothing here ever raises into the flow that triggered the
alert. Transient failures (network errors, 5xx) are retried first.
"""

from typing import Optional

import requests
import structlog
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finflow.config import WhatsAppSettings, get_settings


class NotificationError(Exception):
    """Base exception for notification delivery errors."""
    pass


class TransientDeliveryError(NotificationError):
    """Delivery failed in a way that may succeed on retry."""
    pass


class SendMessageRequest(BaseModel):
    phone_number: str = Field(
        ...,
        min_length=8,
        description="Recipient in international format (e.g. 5511999999999)"
    )
    message: str = Field(..., min_length=1)


class SendResult(BaseModel):
    """Outcome of one delivery attempt."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def _extract_message_id(data) -> str:
    # The API answers with a few different shapes depending on version
    if isinstance(data, dict):
        key = data.get("key")
        if isinstance(key, dict) and key.get("id"):
            return str(key["id"])
        if data.get("msgId"):
            return str(data["msgId"])
        message = data.get("message")
        if isinstance(message, dict) and message.get("id"):
            return str(message["id"])
    return "N/A"


class EvolutionWhatsAppService:
    """
    Sends WhatsApp text messages through an Evolution API instance.

    POST {url}/message/sendText/{instance} with the `apikey` header.
    """

    def __init__(
        self,
        settings: Optional[WhatsAppSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().whatsapp
        self._session = session or requests.Session()
        self._logger = structlog.get_logger(__name__)

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    @property
    def endpoint(self) -> str:
        base = (self._settings.url or "").rstrip("/")
        return f"{base}/message/sendText/{self._settings.instance}"

    @retry(
        retry=retry_if_exception_type(TransientDeliveryError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _post(self, payload: dict) -> requests.Response:
        try:
            response = self._session.post(
                self.endpoint,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "apikey": self._settings.key,
                },
                timeout=self._settings.timeout_seconds,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientDeliveryError(str(e)) from e

        if response.status_code >= 500:
            raise TransientDeliveryError(
                f"Evolution API error: {response.status_code} {response.reason}"
            )
        return response

    def send_message(self, phone_number: str, message: str) -> SendResult:
        """
        Send a text message.

        Returns:
            SendResult; never raises
        """
        if not self.is_configured:
            self._logger.error("whatsapp_not_configured")
            return SendResult(
                success=False,
                error="Evolution API configuration missing (URL, instance or API key).",
            )

        try:
            request = SendMessageRequest(phone_number=phone_number, message=message)
        except ValidationError:
            return SendResult(
                success=False,
                error="A valid phone number and a non-empty message are required.",
            )

        payload = {
            "number": request.phone_number,
            "options": {
                "delay": 1200,
                "presence": "composing",
            },
            "textMessage": {
                "text": request.message,
            },
        }

        try:
            response = self._post(payload)
        except (TransientDeliveryError, requests.RequestException) as e:
            self._logger.error("whatsapp_send_failed", error=str(e))
            return SendResult(
                success=False,
                error=f"Failed to reach the Evolution API: {e}",
            )

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            detail = data.get("message") if isinstance(data, dict) else None
            error = (
                f"Evolution API error: {response.status_code} {response.reason}"
                f" - {detail or response.text}"
            )
            self._logger.error("whatsapp_send_rejected", status=response.status_code)
            return SendResult(success=False, error=error)

        message_id = _extract_message_id(data)
        self._logger.info("whatsapp_sent", message_id=message_id)
        return SendResult(success=True, message_id=message_id)

    def send_alert(self, phone_number: str, message: str) -> tuple[bool, str]:
        """
        Send an alert and describe the outcome for the user.

        Returns: (success, details)
        """
        result = self.send_message(phone_number, message)
        if result.success:
            return True, f"Message sent (ID: {result.message_id or 'N/A'})"
        return False, result.error or "Unknown error sending the alert."
