from .channel import LiveChatChannel, Subscription, TOPIC_PRESENCE, TOPIC_NEW_CHAT
from .notifications import ChatNotification, NotificationInbox, InboxRegistry, PresenceTracker
from .stream import EventStream, event_stream, format_sse
