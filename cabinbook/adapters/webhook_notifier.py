"""
Slack / Discord incoming-webhook notifier for reservation events.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

import requests

from ..domain.exceptions import NotificationError
from ..domain.models import EventKind, ReservationEvent
from ..domain.zone_calendar import TimeZoneCalendar

logger = logging.getLogger(__name__)


KIND_LABELS = {
    EventKind.CREATED: "",
    EventKind.UPDATED: "Updated: ",
    EventKind.DELETED: "Cancelled: ",
}


class WebhookNotifier:
    """
    Posts reservation events to Slack and/or Discord incoming webhooks.

    Each channel is retried with growing delays; a channel that still fails
    is logged and skipped so the other channel is still attempted.
    """

    RETRY_DELAYS = (0.5, 2.0, 5.0)
    LINK_LABEL = "View status"

    def __init__(
        self,
        slack_webhook_url: Optional[str] = None,
        discord_webhook_url: Optional[str] = None,
        resource_names: Optional[Mapping[str, str]] = None,
        resource_timezones: Optional[Mapping[str, str]] = None,
        site_url: Optional[str] = None,
        timeout: float = 10,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.slack_webhook_url = slack_webhook_url
        self.discord_webhook_url = discord_webhook_url
        self.resource_names = dict(resource_names or {})
        self.resource_timezones = dict(resource_timezones or {})
        self.site_url = site_url.rstrip("/") if site_url else None
        self.timeout = timeout
        self._sleep = sleep

    @property
    def enabled(self) -> bool:
        return bool(self.slack_webhook_url or self.discord_webhook_url)

    def dispatch(self, event: ReservationEvent) -> None:
        """Send one event to every configured channel."""
        sent: List[str] = []

        if self.slack_webhook_url:
            if self._try_send("slack", self.slack_webhook_url, {"text": self.compose_slack_text(event)}):
                sent.append("slack")

        if self.discord_webhook_url:
            if self._try_send("discord", self.discord_webhook_url, {"content": self.compose_discord_text(event)}):
                sent.append("discord")

        logger.debug(
            "Reservation %s %s notification sent to: %s",
            event.reservation.id,
            event.kind.value,
            ", ".join(sent) or "none",
        )

    # ------------------------------------------------------------ formatting

    def compose_slack_text(self, event: ReservationEvent) -> str:
        """
        Format: ``[Room / YY-MM-DD / HH:mm~HH:mm]`` then ``>purpose``,
        plus a ``<url|label>`` link when a site URL is configured.
        """
        room, date_str, start, end = self._parts(event)
        text = f"{KIND_LABELS[event.kind]}[{room} / {date_str} / {start}~{end}]\n>{event.reservation.purpose}"

        url = self._resource_url(event.resource_id)
        if url:
            text = f"{text}\n<{url}|{self.LINK_LABEL}>"
        return text

    def compose_discord_text(self, event: ReservationEvent) -> str:
        room, date_str, start, end = self._parts(event)
        content = (
            f"{KIND_LABELS[event.kind]}**{room}**\n"
            f"📅 {date_str} {start}~{end}\n"
            f"📝 {event.reservation.purpose}"
        )

        url = self._resource_url(event.resource_id)
        if url:
            content = f"{content}\n🔗 [{self.LINK_LABEL}]({url})"
        return content

    def _parts(self, event: ReservationEvent):
        reservation = event.reservation
        calendar = TimeZoneCalendar(self.resource_timezones.get(event.resource_id, "UTC"))
        room = self.resource_names.get(event.resource_id) or event.resource_id
        return (
            room,
            calendar.format_date(reservation.start),
            calendar.format_time(reservation.start),
            calendar.format_time(reservation.end),
        )

    def _resource_url(self, resource_id: str) -> Optional[str]:
        if not self.site_url:
            return None
        return f"{self.site_url}/resources/{resource_id}"

    # ------------------------------------------------------------- transport

    def _try_send(self, channel: str, url: str, payload: Dict[str, Any]) -> bool:
        try:
            self.post(url, payload)
        except NotificationError as exc:
            logger.warning("%s notification failed: %s", channel.capitalize(), exc)
            return False
        return True

    def post(self, url: str, payload: Dict[str, Any]) -> None:
        """
        POST a JSON payload, retrying after each delay in ``RETRY_DELAYS``.

        Raises:
            NotificationError: If every attempt failed
        """
        last_error: Optional[Exception] = None

        for attempt in range(len(self.RETRY_DELAYS) + 1):
            try:
                response = requests.post(url, json=payload, timeout=self.timeout)
                response.raise_for_status()
                return
            except requests.exceptions.RequestException as exc:
                last_error = exc
                if attempt < len(self.RETRY_DELAYS):
                    self._sleep(self.RETRY_DELAYS[attempt])

        raise NotificationError(f"Webhook delivery failed after {len(self.RETRY_DELAYS) + 1} attempts: {last_error}") from last_error
