"""
Notification Sinks for ArtPulse
===============================

Delivers "hot opportunity" alerts produced by the publisher.

Payload contract:
    {
        "owner_email": "artist@example.com",
        "subject": "Hot Pulse Alert: New High-Demand Opportunities!",
        "opportunities": [
            {"topic": "Abstract painting", "score": 5.2, "evidence_link": "https://.../opportunities"}
        ]
    }

Configuration:
    NOTIFY_WEBHOOK_URL: Endpoint receiving the JSON payload (from .env)
    ENABLE_NOTIFICATIONS: "true" to post to the webhook (from .env)

Without a configured webhook the LoggingNotificationSink is used, which
only logs the payload.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from ..data.config import NotificationConfig
from ..data.data_models import Opportunity
from ..exceptions import NotificationError

logger = logging.getLogger(__name__)

PULSE_ALERT_SUBJECT = "Hot Pulse Alert: New High-Demand Opportunities!"
MAX_HOT_OPPORTUNITIES = 3


def build_pulse_alert(
    owner_email: str,
    opportunities: List[Opportunity],
    app_url: str,
) -> Dict[str, Any]:
    """Payload for the top hot opportunities, best first."""
    evidence_link = f"{app_url.rstrip('/')}/opportunities"
    return {
        "owner_email": owner_email,
        "subject": PULSE_ALERT_SUBJECT,
        "opportunities": [
            {"topic": o.topic_label, "score": o.wvs_score, "evidence_link": evidence_link}
            for o in opportunities[:MAX_HOT_OPPORTUNITIES]
        ],
    }


def validate_payload(payload: Dict[str, Any]) -> None:
    """
    Raises:
        NotificationError: If a required key is missing
    """
    missing = [key for key in ("owner_email", "subject", "opportunities") if not payload.get(key)]
    if missing:
        raise NotificationError(f"Notification payload missing {', '.join(missing)}")


class NotificationSink(ABC):
    """Fire-and-forget destination for alert payloads."""

    @abstractmethod
    def send(self, payload: Dict[str, Any]) -> bool:
        """Deliver the payload. Returns True when delivered."""


class WebhookNotificationSink(NotificationSink):
    """
    Posts the payload as JSON to an HTTP endpoint.

    Delivery errors are logged and reported through the return value.
    """

    def __init__(self, webhook_url: str, enabled: bool = True, timeout: int = 10):
        self.webhook_url = webhook_url
        self.enabled = enabled
        self.timeout = timeout

        if self.enabled and not self.webhook_url:
            logger.warning("Notifications enabled but NOTIFY_WEBHOOK_URL not set")
            self.enabled = False

    def is_configured(self) -> bool:
        """Check if sink is properly configured."""
        return bool(self.enabled and self.webhook_url)

    def send(self, payload: Dict[str, Any]) -> bool:
        validate_payload(payload)

        if not self.is_configured():
            logger.debug("Webhook notifications disabled or not configured")
            return False

        try:
            response = requests.post(
                self.webhook_url,
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            logger.info(
                f"Pulse alert sent to {payload['owner_email']}: "
                f"{len(payload['opportunities'])} opportunities"
            )
            return True

        except requests.RequestException as e:
            logger.error(f"Failed to send pulse alert: {e}")
            return False


class LoggingNotificationSink(NotificationSink):
    """Logs payloads instead of delivering them. Keeps them in `sent`."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []

    def send(self, payload: Dict[str, Any]) -> bool:
        validate_payload(payload)
        self.sent.append(payload)
        topics = ", ".join(o["topic"] for o in payload["opportunities"])
        logger.info(f"[notification] {payload['subject']} -> {payload['owner_email']}: {topics}")
        return True


def get_notification_sink(config: Optional[NotificationConfig] = None) -> NotificationSink:
    """Webhook sink when enabled and configured, logging sink otherwise."""
    config = config or NotificationConfig()
    if config.enabled and config.webhook_url:
        return WebhookNotificationSink(
            webhook_url=config.webhook_url,
            enabled=True,
            timeout=config.timeout_seconds,
        )
    return LoggingNotificationSink()
