"""Change feed: turns committed rows into channel events.

Changes are collected after each flush and published only once the outer
transaction commits. A rollback drops whatever was collected.
"""

import logging

from flask import current_app, has_app_context
from sqlalchemy import event, inspect
from sqlalchemy.orm import Session as OrmSession

from models.chat_conversation import ChatConversation
from models.live_chat_setting import LiveChatSetting
from realtime.channel import LiveChatChannel, TOPIC_NEW_CHAT, TOPIC_PRESENCE
from realtime.notifications import InboxRegistry

logger = logging.getLogger(__name__)

CHANNEL_EXTENSION = "live_chat_channel"
INBOX_EXTENSION = "live_chat_inboxes"
_PENDING_KEY = "live_chat_pending_events"


def get_channel() -> LiveChatChannel:
    return current_app.extensions[CHANNEL_EXTENSION]


def get_inboxes() -> InboxRegistry:
    return current_app.extensions[INBOX_EXTENSION]


def _presence_changed(setting: LiveChatSetting) -> bool:
    history = inspect(setting).attrs.is_online.history
    return history.has_changes()


def presence_payload(setting: LiveChatSetting) -> dict:
    return setting.to_dict()


def new_chat_payload(conversation: ChatConversation) -> dict:
    return {
        "chat_id": conversation.id,
        "visitor_id": conversation.visitor_id,
        "visitor_label": conversation.visitor_label,
        "post_id": conversation.post_id,
        "source_url": conversation.source_url,
        "created_at": conversation.created_at.isoformat() if conversation.created_at else None,
    }


def _collect_changes(session, flush_context):
    pending = session.info.setdefault(_PENDING_KEY, [])

    for obj in session.new:
        if isinstance(obj, ChatConversation):
            pending.append((TOPIC_NEW_CHAT, new_chat_payload(obj)))
        elif isinstance(obj, LiveChatSetting):
            pending.append((TOPIC_PRESENCE, presence_payload(obj)))

    for obj in session.dirty:
        if isinstance(obj, LiveChatSetting) and _presence_changed(obj):
            pending.append((TOPIC_PRESENCE, presence_payload(obj)))


def _publish_committed(session):
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending:
        return
    if not has_app_context() or CHANNEL_EXTENSION not in current_app.extensions:
        logger.debug("No live chat channel; dropping %d change(s)", len(pending))
        return

    channel = get_channel()
    for topic, payload in pending:
        channel.publish(topic, payload)


def _discard_pending(session):
    session.info.pop(_PENDING_KEY, None)


def install_change_feed() -> None:
    """Register the session hooks once per process."""
    hooks = (
        ("after_flush", _collect_changes),
        ("after_commit", _publish_committed),
        ("after_rollback", _discard_pending),
    )
    for name, fn in hooks:
        if not event.contains(OrmSession, name, fn):
            event.listen(OrmSession, name, fn)
