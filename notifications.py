"""
Reminder delivery.

NotificationCapability is built once at startup. With NOTIFY_WEBHOOK_URL
set, reminders are pushed to that endpoint; otherwise (or when a push
fails) they are queued on the in-app alert feed that GET /api/alerts
drains.
"""

import logging
import threading
from collections import defaultdict, deque
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

import requests

import config
from models import utcnow

logger = logging.getLogger(__name__)

CHANNEL_PUSH = "push"
CHANNEL_IN_APP = "in_app"

# title, body templates per reminder offset
REMINDER_TEXT = {
    "24h": (
        "Check-in Reminder - 24 Hours",
        "Check-in opens for {passenger} on {airline} {flight}",
    ),
    "3h": (
        "Check-in Reminder - 3 Hours",
        "Check-in closing soon for {passenger} on {airline} {flight}",
    ),
}


@dataclass
class Notification:
    title: str
    body: str
    user_id: str
    record_id: Optional[str] = None
    offset: Optional[str] = None
    created_at: str = field(default_factory=lambda: utcnow().isoformat())

    def to_dict(self) -> Dict:
        return asdict(self)


def reminder_notification(record, offset: str) -> Notification:
    title, body = REMINDER_TEXT[offset]
    return Notification(
        title=title,
        body=body.format(
            passenger=record.passenger_name,
            airline=record.airline_name,
            flight=record.flight_number,
        ),
        user_id=record.user_id,
        record_id=record.id,
        offset=offset,
    )


class InAppAlertFeed:
    """Per-user queue of undelivered alerts."""

    def __init__(self, max_per_user: int = 100):
        self._lock = threading.Lock()
        self._alerts = defaultdict(lambda: deque(maxlen=max_per_user))

    def push(self, notification: Notification) -> None:
        with self._lock:
            self._alerts[notification.user_id].append(notification)

    def drain(self, user_id: str) -> List[Dict]:
        with self._lock:
            pending = self._alerts.pop(user_id, None) or []
        return [n.to_dict() for n in pending]


class NotificationCapability:
    """Decides once, at construction, whether the push tier is available."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        feed: Optional[InAppAlertFeed] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.webhook_url = config.NOTIFY_WEBHOOK_URL if webhook_url is None else webhook_url
        self.feed = feed or InAppAlertFeed()
        self.timeout = timeout or config.NOTIFY_TIMEOUT
        self.http = session or requests.Session()
        self.push_enabled = bool(self.webhook_url)
        logger.info("Reminder delivery: %s", CHANNEL_PUSH if self.push_enabled else CHANNEL_IN_APP)

    def notify(self, notification: Notification) -> str:
        """Deliver `notification`; returns the channel actually used."""
        if self.push_enabled:
            try:
                response = self.http.post(
                    self.webhook_url,
                    json={"title": notification.title, "body": notification.body},
                    timeout=self.timeout,
                )
                response.raise_for_status()
                return CHANNEL_PUSH
            except requests.RequestException as e:
                logger.warning("Push delivery failed, falling back to in-app alert: %s", e)

        self.feed.push(notification)
        return CHANNEL_IN_APP
