from datetime import datetime

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.blocked_ip import BlockedIP
from models.chat_conversation import ChatConversation, CONVERSATION_STATUSES
from models.chat_message import ChatMessage
from realtime.channel import TOPIC_NEW_CHAT
from realtime.feed import get_channel, get_inboxes
from realtime.stream import event_stream
from routes.live_chat import sse_response
from security.rbac import require_roles
from utils.audit import log_event
from utils.blocklist import normalize_ip
from utils.presence import get_presence, set_presence
from utils.validation import json_object, text_field

live_chat_admin_bp = Blueprint("live_chat_admin", __name__, url_prefix="/admin/live-chat")


def _store_error(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify(success=False, error=message), 500


# ---------- presence ----------
@live_chat_admin_bp.get("/presence")
@require_roles("OPERATOR")
def read_presence():
    return jsonify(get_presence()), 200


@live_chat_admin_bp.put("/presence")
@require_roles("OPERATOR")
def update_presence():
    is_online = json_object().get("is_online")
    if not isinstance(is_online, bool):
        return jsonify(success=False, error="is_online must be a boolean"), 400

    success, error = set_presence(is_online, g.user)
    if not success:
        return jsonify(success=False, error=error), 500
    return jsonify(success=True, **get_presence()), 200


# ---------- new-chat notifications ----------
@live_chat_admin_bp.get("/notifications/stream")
@require_roles("OPERATOR")
def notifications_stream():
    stream = event_stream(
        get_channel(),
        [TOPIC_NEW_CHAT],
        heartbeat_seconds=current_app.config.get("LIVE_CHAT_STREAM_HEARTBEAT_SECONDS", 15),
    )
    return sse_response(stream)


@live_chat_admin_bp.get("/notification")
@require_roles("OPERATOR")
def current_notification():
    notification = get_inboxes().get(g.user.id).current
    return jsonify(notification=notification.to_dict() if notification else None), 200


@live_chat_admin_bp.post("/notification/dismiss")
@require_roles("OPERATOR")
def dismiss_notification():
    get_inboxes().get(g.user.id).dismiss()
    return jsonify(notification=None), 200


# ---------- moderation ----------
@live_chat_admin_bp.get("/blocked-ips")
@require_roles("OPERATOR")
def list_blocked_ips():
    ip = normalize_ip(request.args.get("ip"))
    if ip:
        row = BlockedIP.query.filter_by(ip_address=ip).first()
        return jsonify(blocked=row is not None, data=row.to_dict() if row else None), 200

    rows = BlockedIP.query.order_by(BlockedIP.created_at.desc()).limit(500).all()
    return jsonify(blocked_ips=[r.to_dict() for r in rows]), 200


@live_chat_admin_bp.post("/blocked-ips")
@require_roles("OPERATOR")
def update_blocked_ip():
    data = json_object()
    ip = normalize_ip(text_field(data, "ip_address"))
    reason = text_field(data, "reason")[:255] or None
    action = data.get("action")

    if not ip:
        return jsonify(error="ip_address is required"), 400
    if len(ip) > 64:
        return jsonify(error="ip_address is too long"), 400
    if action not in ("block", "unblock"):
        return jsonify(error="action must be 'block' or 'unblock'"), 400

    row = BlockedIP.query.filter_by(ip_address=ip).first()
    try:
        if action == "block":
            if row is None:
                row = BlockedIP(ip_address=ip)
                db.session.add(row)
            row.reason = reason
            row.blocked_by = g.user.email
        elif row is not None:
            db.session.delete(row)
        db.session.commit()
    except SQLAlchemyError:
        return _store_error(f"Failed to {action} IP")

    log_event(
        "IP_BLOCK" if action == "block" else "IP_UNBLOCK",
        user_id=g.user.id,
        entity="blocked_ip",
        entity_id=ip,
        metadata={"reason": reason} if reason else None,
    )
    return jsonify(success=True, action="blocked" if action == "block" else "unblocked"), 200


# ---------- conversations ----------
def _get_conversation_or_404(conversation_id: str):
    conversation = db.session.get(ChatConversation, conversation_id.lower())
    if not conversation:
        return None, (jsonify(error="Conversation not found"), 404)
    return conversation, None


@live_chat_admin_bp.get("/conversations")
@require_roles("OPERATOR")
def list_conversations():
    status = (request.args.get("status") or "").strip().lower()
    q = ChatConversation.query
    if status:
        q = q.filter(ChatConversation.status == status)

    rows = (
        q.order_by(ChatConversation.last_message_at.desc(), ChatConversation.created_at.desc())
        .limit(200)
        .all()
    )
    ids = [c.id for c in rows]

    unread = {}
    replied = set()
    if ids:
        unread = dict(
            db.session.query(ChatMessage.conversation_id, func.count(ChatMessage.id))
            .filter(
                ChatMessage.conversation_id.in_(ids),
                ChatMessage.sender_type == "visitor",
                ChatMessage.is_read.is_(False),
            )
            .group_by(ChatMessage.conversation_id)
            .all()
        )
        replied = {
            cid for (cid,) in db.session.query(ChatMessage.conversation_id)
            .filter(ChatMessage.conversation_id.in_(ids), ChatMessage.sender_type == "admin")
            .distinct()
        }

    out = []
    for c in rows:
        item = c.to_dict()
        item["last_message"] = c.messages[-1].to_dict() if c.messages else None
        item["unread_count"] = unread.get(c.id, 0)
        item["admin_has_replied"] = c.id in replied
        out.append(item)
    return jsonify(conversations=out), 200


@live_chat_admin_bp.get("/conversations/<conversation_id>")
@require_roles("OPERATOR")
def conversation_detail(conversation_id: str):
    conversation, error = _get_conversation_or_404(conversation_id)
    if error:
        return error
    return jsonify(
        conversation=conversation.to_dict(),
        messages=[m.to_dict() for m in conversation.messages],
    ), 200


@live_chat_admin_bp.post("/conversations/<conversation_id>/messages")
@require_roles("OPERATOR")
def reply(conversation_id: str):
    conversation, error = _get_conversation_or_404(conversation_id)
    if error:
        return error

    content = text_field(json_object(), "content")
    if not content:
        return jsonify(error="content is required"), 400

    max_length = current_app.config.get("MAX_MESSAGE_LENGTH", 5000)
    if len(content) > max_length:
        return jsonify(error=f"Message too long. Maximum {max_length} characters allowed."), 400

    now = datetime.utcnow()
    message = ChatMessage(
        conversation_id=conversation.id,
        sender_type="admin",
        content=content,
        is_read=True,
        created_at=now,
    )
    db.session.add(message)
    conversation.last_message_at = now
    try:
        db.session.commit()
    except SQLAlchemyError:
        return _store_error("Failed to send reply")

    return jsonify(message=message.to_dict()), 201


@live_chat_admin_bp.post("/conversations/<conversation_id>/read")
@require_roles("OPERATOR")
def mark_read(conversation_id: str):
    conversation, error = _get_conversation_or_404(conversation_id)
    if error:
        return error

    try:
        updated = (
            ChatMessage.query
            .filter_by(conversation_id=conversation.id, sender_type="visitor", is_read=False)
            .update({"is_read": True}, synchronize_session=False)
        )
        db.session.commit()
    except SQLAlchemyError:
        return _store_error("Failed to mark messages as read")

    return jsonify(success=True, updated=updated), 200


@live_chat_admin_bp.post("/conversations/<conversation_id>/status")
@require_roles("OPERATOR")
def update_status(conversation_id: str):
    conversation, error = _get_conversation_or_404(conversation_id)
    if error:
        return error

    status = text_field(json_object(), "status").lower()
    if status not in CONVERSATION_STATUSES:
        return jsonify(error="status must be one of: " + ", ".join(CONVERSATION_STATUSES)), 400

    previous = conversation.status
    conversation.status = status
    try:
        db.session.commit()
    except SQLAlchemyError:
        return _store_error("Failed to update conversation status")

    log_event(
        "CONVERSATION_STATUS",
        user_id=g.user.id,
        entity="chat_conversation",
        entity_id=conversation.id,
        metadata={"from": previous, "to": status},
    )
    return jsonify(success=True, status=status), 200


@live_chat_admin_bp.delete("/conversations/<conversation_id>")
@require_roles("OPERATOR")
def delete_conversation(conversation_id: str):
    conversation, error = _get_conversation_or_404(conversation_id)
    if error:
        return error

    db.session.delete(conversation)
    try:
        db.session.commit()
    except SQLAlchemyError:
        return _store_error("Failed to delete conversation")

    log_event("CONVERSATION_DELETE", user_id=g.user.id, entity="chat_conversation", entity_id=conversation_id)
    return jsonify(success=True), 200
