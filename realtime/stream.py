"""Server-sent event framing for channel subscriptions."""

import json
import queue
from typing import Callable, Iterable, Optional, Tuple

from realtime.channel import LiveChatChannel, TOPIC_PRESENCE
from realtime.notifications import PresenceTracker

KEEPALIVE_FRAME = ": keepalive\n\n"


def format_sse(data, event: Optional[str] = None) -> str:
    frame = f"data: {json.dumps(data)}\n\n"
    if event:
        frame = f"event: {event}\n" + frame
    return frame


class EventStream:
    """Iterator of SSE frames for a live channel subscription.

    The subscription and the snapshot are both taken when the stream is built,
    subscription first, so nothing committed between the read and the first
    pushed event is lost. Building it eagerly also means the view can release
    its DB session before the response starts streaming.

    With a ``tracker``, presence events that repeat the snapshot (or arrive
    out of date) are dropped instead of being sent twice.
    """

    def __init__(
        self,
        channel: LiveChatChannel,
        topics: Iterable[str],
        snapshot: Optional[Callable[[], Tuple[str, dict]]] = None,
        heartbeat_seconds: float = 15,
        tracker: Optional[PresenceTracker] = None,
    ):
        self._events = queue.Queue()
        self._heartbeat = heartbeat_seconds
        self._tracker = tracker
        self._pending = []

        handlers = {topic: (lambda payload, topic=topic: self._events.put((topic, payload))) for topic in topics}
        self._subscription = channel.listen(handlers)
        if snapshot is None:
            return
        try:
            event, data = snapshot()
        except Exception:
            self.close()
            raise
        if tracker is not None and event == TOPIC_PRESENCE:
            tracker.apply(data)
        self._pending.append(format_sse(data, event))

    def __iter__(self):
        return self

    def __next__(self) -> str:
        if not self._subscription.active:
            raise StopIteration
        if self._pending:
            return self._pending.pop(0)

        while True:
            try:
                topic, payload = self._events.get(timeout=self._heartbeat)
            except queue.Empty:
                return KEEPALIVE_FRAME
            if topic == TOPIC_PRESENCE and self._tracker is not None and not self._tracker.apply(payload):
                continue
            return format_sse(payload, topic)

    def close(self) -> None:
        """Idempotent; once it returns the subscription receives nothing more."""
        self._subscription.unsubscribe()


def event_stream(channel, topics, snapshot=None, heartbeat_seconds=15, tracker=None) -> EventStream:
    return EventStream(channel, topics, snapshot=snapshot, heartbeat_seconds=heartbeat_seconds, tracker=tracker)
