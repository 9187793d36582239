"""
Tests for the Slack / Discord webhook notifier.
"""

from typing import Any, Dict, List

import pendulum
import pytest
import requests

from cabinbook.adapters import webhook_notifier
from cabinbook.adapters.webhook_notifier import WebhookNotifier
from cabinbook.domain.exceptions import NotificationError
from cabinbook.domain.models import EventKind, Reservation, ReservationEvent

SLACK_URL = "https://hooks.slack.com/services/T/B/X"
DISCORD_URL = "https://discord.com/api/webhooks/1/abc"


class FakeResponse:
    def __init__(self, status_code: int = 200):
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class FakePost:
    """Replays a list of responses / exceptions and records each call."""

    def __init__(self, outcomes: List[Any]):
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        outcome = self.outcomes.pop(0) if self.outcomes else FakeResponse()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _event(kind: EventKind = EventKind.CREATED) -> ReservationEvent:
    reservation = Reservation(
        id="r1",
        resource_id="cabin-a",
        start=pendulum.parse("2024-03-01 14:00", tz="Asia/Seoul"),
        end=pendulum.parse("2024-03-01 15:30", tz="Asia/Seoul"),
        purpose="Design review",
    )
    return ReservationEvent(resource_id="cabin-a", reservation=reservation, kind=kind)


def _notifier(**kwargs) -> WebhookNotifier:
    sleeps: List[float] = []
    notifier = WebhookNotifier(
        resource_names={"cabin-a": "Cabin A"},
        resource_timezones={"cabin-a": "Asia/Seoul"},
        sleep=sleeps.append,
        **kwargs,
    )
    notifier.sleeps = sleeps
    return notifier


class TestMessageFormat:
    """Tests for message composition."""

    def test_slack_text(self):
        notifier = _notifier(slack_webhook_url=SLACK_URL)

        text = notifier.compose_slack_text(_event())

        assert text == "[Cabin A / 24-03-01 / 14:00~15:30]\n>Design review"

    def test_slack_text_with_link(self):
        notifier = _notifier(slack_webhook_url=SLACK_URL, site_url="https://cabins.example.com/")

        text = notifier.compose_slack_text(_event())

        assert text.endswith("\n<https://cabins.example.com/resources/cabin-a|View status>")

    def test_discord_text(self):
        notifier = _notifier(discord_webhook_url=DISCORD_URL)

        content = notifier.compose_discord_text(_event())

        assert content == "**Cabin A**\n📅 24-03-01 14:00~15:30\n📝 Design review"

    def test_kind_prefix(self):
        notifier = _notifier(slack_webhook_url=SLACK_URL)

        assert notifier.compose_slack_text(_event(EventKind.UPDATED)).startswith("Updated: [Cabin A")
        assert notifier.compose_slack_text(_event(EventKind.DELETED)).startswith("Cancelled: [Cabin A")

    def test_unknown_resource_falls_back_to_id_and_utc(self):
        notifier = WebhookNotifier(slack_webhook_url=SLACK_URL)

        text = notifier.compose_slack_text(_event())

        assert text.startswith("[cabin-a / 2024-03-01 / 05:00~06:30]")


class TestDelivery:
    """Tests for posting and retries."""

    def test_dispatch_posts_to_both_channels(self, monkeypatch):
        fake_post = FakePost([FakeResponse(), FakeResponse()])
        monkeypatch.setattr(webhook_notifier.requests, "post", fake_post)
        notifier = _notifier(slack_webhook_url=SLACK_URL, discord_webhook_url=DISCORD_URL)

        notifier.dispatch(_event())

        assert [c["url"] for c in fake_post.calls] == [SLACK_URL, DISCORD_URL]
        assert "text" in fake_post.calls[0]["json"]
        assert "content" in fake_post.calls[1]["json"]
        assert fake_post.calls[0]["timeout"] == 10

    def test_retries_then_succeeds(self, monkeypatch):
        fake_post = FakePost([requests.exceptions.ConnectionError("boom"), FakeResponse(500), FakeResponse()])
        monkeypatch.setattr(webhook_notifier.requests, "post", fake_post)
        notifier = _notifier(slack_webhook_url=SLACK_URL)

        notifier.dispatch(_event())

        assert len(fake_post.calls) == 3
        assert notifier.sleeps == [0.5, 2.0]

    def test_post_gives_up_after_all_delays(self, monkeypatch):
        fake_post = FakePost([FakeResponse(503)] * 4)
        monkeypatch.setattr(webhook_notifier.requests, "post", fake_post)
        notifier = _notifier(slack_webhook_url=SLACK_URL)

        with pytest.raises(NotificationError, match="4 attempts"):
            notifier.post(SLACK_URL, {"text": "hi"})

        assert notifier.sleeps == [0.5, 2.0, 5.0]

    def test_failed_channel_does_not_block_the_other(self, monkeypatch, caplog):
        fake_post = FakePost([FakeResponse(500)] * 4 + [FakeResponse()])
        monkeypatch.setattr(webhook_notifier.requests, "post", fake_post)
        notifier = _notifier(slack_webhook_url=SLACK_URL, discord_webhook_url=DISCORD_URL)

        notifier.dispatch(_event())

        assert fake_post.calls[-1]["url"] == DISCORD_URL
        assert "Slack notification failed" in caplog.text

    def test_no_channels_configured(self, monkeypatch):
        fake_post = FakePost([])
        monkeypatch.setattr(webhook_notifier.requests, "post", fake_post)
        notifier = WebhookNotifier()

        notifier.dispatch(_event())

        assert not notifier.enabled
        assert fake_post.calls == []
