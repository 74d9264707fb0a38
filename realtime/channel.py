"""In-process publish/subscribe channel for live chat signals.

Two topics are carried: ``presence`` (operator online/offline) and
``new-chat`` (a conversation was opened). Publishing is serialized per topic,
so every subscriber sees a topic's events in publish order. There is no
ordering between topics.
"""

import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

TOPIC_PRESENCE = "presence"
TOPIC_NEW_CHAT = "new-chat"
TOPICS = (TOPIC_PRESENCE, TOPIC_NEW_CHAT)

Handler = Callable[[dict], None]


class Subscription:
    """Handle returned by :meth:`LiveChatChannel.subscribe`."""

    def __init__(self, channel: "LiveChatChannel", handlers: Dict[str, Handler]):
        self._channel = channel
        self._handlers = dict(handlers)
        # Held while a callback runs, so closing waits for in-flight delivery.
        self._lock = threading.RLock()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def topics(self):
        return frozenset(self._handlers)

    def deliver(self, topic: str, payload: dict) -> bool:
        handler = self._handlers.get(topic)
        if handler is None:
            return False
        with self._lock:
            if not self._active:
                return False
            handler(payload)
            return True

    def close(self) -> None:
        with self._lock:
            self._active = False

    def unsubscribe(self) -> None:
        self._channel.unsubscribe(self)


class LiveChatChannel:
    def __init__(self):
        self._lock = threading.Lock()
        self._publish_locks = {topic: threading.RLock() for topic in TOPICS}
        self._subscriptions = []

    def listen(self, handlers: Dict[str, Handler]) -> Subscription:
        unknown = set(handlers) - set(TOPICS)
        if unknown:
            raise ValueError(f"Unknown topic(s): {', '.join(sorted(unknown))}")
        subscription = Subscription(self, handlers)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def subscribe(
        self,
        on_presence_change: Optional[Handler] = None,
        on_new_chat: Optional[Handler] = None,
    ) -> Subscription:
        handlers = {}
        if on_presence_change is not None:
            handlers[TOPIC_PRESENCE] = on_presence_change
        if on_new_chat is not None:
            handlers[TOPIC_NEW_CHAT] = on_new_chat
        return self.listen(handlers)

    def unsubscribe(self, subscription: Subscription) -> None:
        """Release a subscription. Safe to call more than once.

        When this returns no callback of the subscription is running and none
        will run afterwards.
        """
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        subscription.close()

    def publish(self, topic: str, payload: dict) -> int:
        """Deliver ``payload`` to every active subscriber of ``topic``.

        Returns the number of callbacks that ran. A failing callback is logged
        and does not stop delivery to the others.
        """
        if topic not in self._publish_locks:
            raise ValueError(f"Unknown topic: {topic}")

        delivered = 0
        with self._publish_locks[topic]:
            with self._lock:
                targets = [s for s in self._subscriptions if topic in s.topics]
            for subscription in targets:
                try:
                    if subscription.deliver(topic, payload):
                        delivered += 1
                except Exception:
                    logger.exception("Live chat subscriber failed on topic %s", topic)
        return delivered

    def subscriber_count(self, topic: Optional[str] = None) -> int:
        with self._lock:
            if topic is None:
                return len(self._subscriptions)
            return sum(1 for s in self._subscriptions if topic in s.topics)
