import threading
from datetime import datetime
from typing import Callable, NamedTuple, Optional

from realtime.channel import LiveChatChannel, Subscription


def _parse_ts(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


class ChatNotification(NamedTuple):
    chat_id: str
    visitor_label: str
    received_at: datetime

    def to_dict(self):
        return {
            "chat_id": self.chat_id,
            "visitor_label": self.visitor_label,
            "received_at": self.received_at.isoformat(),
        }


class NotificationInbox:
    """Single dismissible new-chat alert for one operator console.

    Every new-chat event replaces the current alert, including one identical
    to an alert that was just dismissed.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        self._clock = clock
        self._lock = threading.Lock()
        self._current: Optional[ChatNotification] = None
        self._subscription: Optional[Subscription] = None

    def attach(self, channel: LiveChatChannel) -> "NotificationInbox":
        self._subscription = channel.subscribe(on_new_chat=self.receive)
        return self

    def receive(self, payload: dict) -> None:
        notification = ChatNotification(
            chat_id=payload["chat_id"],
            visitor_label=payload.get("visitor_label") or "Visitor",
            received_at=self._clock(),
        )
        with self._lock:
            self._current = notification

    @property
    def current(self) -> Optional[ChatNotification]:
        with self._lock:
            return self._current

    def dismiss(self) -> None:
        with self._lock:
            self._current = None

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None


class InboxRegistry:
    """Process-local inboxes keyed by operator id."""

    def __init__(self, channel: LiveChatChannel):
        self._channel = channel
        self._lock = threading.Lock()
        self._inboxes = {}

    def get(self, operator_id: int) -> NotificationInbox:
        with self._lock:
            inbox = self._inboxes.get(operator_id)
            if inbox is None:
                inbox = NotificationInbox().attach(self._channel)
                self._inboxes[operator_id] = inbox
            return inbox

    def discard(self, operator_id: int) -> None:
        with self._lock:
            inbox = self._inboxes.pop(operator_id, None)
        if inbox is not None:
            inbox.close()

    def __len__(self):
        with self._lock:
            return len(self._inboxes)


class PresenceTracker:
    """A subscriber's view of operator presence, e.g. one presence stream.

    Applying the same state twice is a no-op, and an event older than the
    newest one seen is ignored. ``on_change`` fires only on a real transition.
    """

    def __init__(self, on_change: Optional[Callable[[bool], None]] = None):
        self.is_online: Optional[bool] = None
        self.updated_at: Optional[datetime] = None
        self._on_change = on_change
        self._lock = threading.Lock()

    def apply(self, payload: dict) -> bool:
        is_online = bool(payload.get("is_online"))
        ts = _parse_ts(payload.get("updated_at"))

        with self._lock:
            if ts is not None and self.updated_at is not None and ts < self.updated_at:
                return False
            if ts is not None:
                self.updated_at = ts
            if self.is_online is is_online:
                return False
            self.is_online = is_online

        if self._on_change is not None:
            self._on_change(is_online)
        return True
