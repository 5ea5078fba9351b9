"""ArtPulse notification sinks."""

from .notifier import (
    NotificationSink,
    WebhookNotificationSink,
    LoggingNotificationSink,
    build_pulse_alert,
    get_notification_sink,
    PULSE_ALERT_SUBJECT,
)

__all__ = [
    "NotificationSink",
    "WebhookNotificationSink",
    "LoggingNotificationSink",
    "build_pulse_alert",
    "get_notification_sink",
    "PULSE_ALERT_SUBJECT",
]
