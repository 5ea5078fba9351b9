"""
Tests for notification sinks and the pulse alert payload.
"""

from datetime import date
from unittest.mock import Mock, patch

import pytest
import requests

from artpulse.data.config import NotificationConfig
from artpulse.data.data_models import Opportunity, PriceBand
from artpulse.exceptions import NotificationError
from artpulse.notifications.notifier import (
    PULSE_ALERT_SUBJECT,
    LoggingNotificationSink,
    WebhookNotificationSink,
    build_pulse_alert,
    get_notification_sink,
)


def make_opportunity(rank, label, wvs):
    return Opportunity(
        owner_id="owner-1",
        opportunity_date=date(2026, 3, 10),
        rank=rank,
        topic_id=f"topic-{rank}",
        topic_label=label,
        wvs_score=wvs,
        velocity_score=wvs,
        price_band=PriceBand(min=120, median=150, max=220),
        confidence=0.7,
    )


@pytest.fixture
def payload():
    return build_pulse_alert(
        "artist@example.com",
        [make_opportunity(1, "Abstract painting", 5.2)],
        "https://app.example.com/",
    )


class TestPulseAlert:

    def test_payload_shape(self, payload):
        assert payload["owner_email"] == "artist@example.com"
        assert payload["subject"] == PULSE_ALERT_SUBJECT
        assert payload["opportunities"] == [{
            "topic": "Abstract painting",
            "score": 5.2,
            "evidence_link": "https://app.example.com/opportunities",
        }]

    def test_top_three_only(self):
        opportunities = [make_opportunity(i, f"Topic {i}", 9.0 - i) for i in range(1, 6)]
        payload = build_pulse_alert("a@example.com", opportunities, "http://localhost:3000")
        assert [o["topic"] for o in payload["opportunities"]] == ["Topic 1", "Topic 2", "Topic 3"]


class TestWebhookSink:

    @patch("artpulse.notifications.notifier.requests.post")
    def test_posts_json(self, mock_post, payload):
        mock_post.return_value = Mock(status_code=200)
        sink = WebhookNotificationSink("https://hooks.example.com/pulse", timeout=5)

        assert sink.send(payload) is True
        mock_post.assert_called_once_with(
            "https://hooks.example.com/pulse", json=payload, timeout=5
        )

    @patch("artpulse.notifications.notifier.requests.post")
    def test_delivery_error_reported(self, mock_post, payload):
        mock_post.side_effect = requests.ConnectionError("refused")
        sink = WebhookNotificationSink("https://hooks.example.com/pulse")

        assert sink.send(payload) is False

    @patch("artpulse.notifications.notifier.requests.post")
    def test_http_error_reported(self, mock_post, payload):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("502")
        mock_post.return_value = response

        assert WebhookNotificationSink("https://hooks.example.com/pulse").send(payload) is False

    @patch("artpulse.notifications.notifier.requests.post")
    def test_disabled_sink_never_posts(self, mock_post, payload):
        sink = WebhookNotificationSink("https://hooks.example.com/pulse", enabled=False)
        assert sink.send(payload) is False
        mock_post.assert_not_called()

    def test_enabled_without_url_disables_itself(self):
        sink = WebhookNotificationSink("", enabled=True)
        assert not sink.is_configured()

    def test_incomplete_payload_rejected(self):
        sink = WebhookNotificationSink("https://hooks.example.com/pulse")
        with pytest.raises(NotificationError):
            sink.send({"owner_email": "", "subject": "x", "opportunities": [{}]})


class TestSinkFactory:

    def test_logging_sink_by_default(self):
        assert isinstance(get_notification_sink(NotificationConfig()), LoggingNotificationSink)

    def test_webhook_when_configured(self):
        config = NotificationConfig(webhook_url="https://hooks.example.com/pulse", enabled=True)
        sink = get_notification_sink(config)
        assert isinstance(sink, WebhookNotificationSink)
        assert sink.is_configured()

    def test_logging_sink_records_payloads(self, payload):
        sink = LoggingNotificationSink()
        assert sink.send(payload)
        assert sink.sent == [payload]
