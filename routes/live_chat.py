import re
from datetime import datetime

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.chat_conversation import ChatConversation
from models.chat_message import ChatMessage
from realtime.channel import TOPIC_PRESENCE
from realtime.feed import get_channel
from realtime.notifications import PresenceTracker
from realtime.stream import event_stream
from security.access_gate import check_access
from security.rate_limit import rate_limited_response
from utils.client_ip import client_ip
from utils.emailer import notify_new_conversation
from utils.presence import get_presence
from utils.validation import ValidationError, json_object, text_field
from utils.visitor import get_or_create_visitor_id, is_valid_uuid

live_chat_bp = Blueprint("live_chat", __name__, url_prefix="/live-chat")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 255
MAX_POST_ID_LENGTH = 64

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


def sse_response(stream):
    """Stream frames without holding a pooled DB connection for the stream's lifetime."""
    db.session.remove()
    resp = Response(stream_with_context(stream), mimetype="text/event-stream", headers=SSE_HEADERS)
    resp.call_on_close(stream.close)
    return resp


@live_chat_bp.get("/check-blocked")
def check_blocked():
    ip = client_ip()
    try:
        decision = check_access(ip, "chatCheckBlocked")
    except Exception:
        # Visitors are never shown gate failures: allow and log.
        current_app.logger.exception("Blocked check failed for %s; allowing", ip)
        return jsonify(blocked=False), 200

    if not decision.allowed and not decision.blocked:
        return rate_limited_response("chatCheckBlocked", decision.retry_after)
    return jsonify(blocked=decision.blocked), 200


@live_chat_bp.get("/presence")
def presence():
    return jsonify(get_presence()), 200


@live_chat_bp.get("/presence/stream")
def presence_stream():
    stream = event_stream(
        get_channel(),
        [TOPIC_PRESENCE],
        snapshot=lambda: (TOPIC_PRESENCE, get_presence()),
        heartbeat_seconds=current_app.config.get("LIVE_CHAT_STREAM_HEARTBEAT_SECONDS", 15),
        tracker=PresenceTracker(),
    )
    return sse_response(stream)


@live_chat_bp.get("/visitor-id")
def visitor_id():
    return jsonify(visitor_id=get_or_create_visitor_id()), 200


def _post_id(data: dict):
    value = data.get("post_id")
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError("post_id must be a string")
    value = str(value).strip()
    if len(value) > MAX_POST_ID_LENGTH:
        raise ValidationError(f"post_id must be {MAX_POST_ID_LENGTH} characters or less")
    return value or None


@live_chat_bp.post("/conversation")
def create_conversation():
    ip = client_ip()
    decision = check_access(ip, "chatConversation")
    if not decision.allowed:
        if decision.blocked:
            current_app.logger.info("Blocked IP %s attempted to start conversation", ip)
            return jsonify(error="You are not allowed to start new conversations"), 403
        return rate_limited_response("chatConversation", decision.retry_after)

    data = json_object()
    visitor = text_field(data, "visitor_id")
    visitor_name = text_field(data, "visitor_name") or None
    visitor_email = text_field(data, "visitor_email") or None
    post_id = _post_id(data)
    source_url = text_field(data, "source_url") or None
    consent_given = data.get("consent_given") is True

    if not visitor:
        return jsonify(error="visitor_id is required"), 400
    if not is_valid_uuid(visitor):
        return jsonify(error="Invalid visitor_id format"), 400

    max_name = current_app.config.get("MAX_VISITOR_NAME_LENGTH", 30)
    if visitor_name and len(visitor_name) > max_name:
        return jsonify(error=f"Name must be {max_name} characters or less"), 400
    if visitor_email and len(visitor_email) > MAX_EMAIL_LENGTH:
        return jsonify(error=f"Email must be {MAX_EMAIL_LENGTH} characters or less"), 400
    if visitor_email and not EMAIL_RE.match(visitor_email):
        return jsonify(error="Invalid email format"), 400

    visitor = visitor.lower()
    returning = ChatConversation.query.filter_by(visitor_id=visitor).first() is not None

    conversation = ChatConversation(
        visitor_id=visitor,
        visitor_name=visitor_name,
        visitor_email=visitor_email,
        post_id=post_id,
        source_url=source_url[:2048] if source_url else None,
        visitor_ip=ip[:64] if consent_given else None,
        status="active",
    )
    db.session.add(conversation)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error creating live chat conversation")
        return jsonify(error="Internal server error"), 500

    notify_new_conversation(conversation.id, visitor, source_url, is_reopen=returning)

    return jsonify(conversation=conversation.to_dict()), 201


@live_chat_bp.post("/message")
def create_message():
    ip = client_ip()
    decision = check_access(ip, "chatMessage")
    if not decision.allowed:
        if decision.blocked:
            current_app.logger.info("Blocked IP %s attempted to send message", ip)
            return jsonify(error="You are not allowed to send messages"), 403
        return rate_limited_response("chatMessage", decision.retry_after)

    data = json_object()
    conversation_id = text_field(data, "conversation_id")
    content = text_field(data, "content")

    if not conversation_id:
        return jsonify(error="conversation_id is required"), 400
    if not content:
        return jsonify(error="content is required"), 400
    if not is_valid_uuid(conversation_id):
        return jsonify(error="Invalid conversation_id format"), 400

    max_length = current_app.config.get("MAX_MESSAGE_LENGTH", 5000)
    if len(content) > max_length:
        return jsonify(error=f"Message too long. Maximum {max_length} characters allowed."), 400

    conversation = db.session.get(ChatConversation, conversation_id.lower())
    if not conversation:
        return jsonify(error="Conversation not found"), 404
    if conversation.status == "closed":
        return jsonify(error="This conversation has been closed"), 400

    now = datetime.utcnow()
    message = ChatMessage(
        conversation_id=conversation.id,
        sender_type="visitor",
        content=content,
        is_read=False,
        created_at=now,
    )
    db.session.add(message)
    conversation.last_message_at = now
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error creating live chat message")
        return jsonify(error="Internal server error"), 500

    return jsonify(message=message.to_dict()), 201


@live_chat_bp.get("/visitor")
def visitor_conversation():
    visitor = (request.args.get("visitor_id") or "").strip().lower()
    conversation_id = (request.args.get("conversation_id") or "").strip().lower()

    if not is_valid_uuid(visitor):
        return jsonify(error="Valid visitor_id is required"), 400

    if conversation_id:
        if not is_valid_uuid(conversation_id):
            return jsonify(error="Invalid conversation_id format"), 400
        conversation = db.session.get(ChatConversation, conversation_id)
        if not conversation:
            return jsonify(error="Conversation not found"), 404
        if conversation.visitor_id != visitor:
            return jsonify(error="Access denied"), 403
        return jsonify(
            conversation=conversation.to_dict(),
            messages=[m.to_dict() for m in conversation.messages],
        ), 200

    # Closed conversations are not resumed; the visitor starts fresh.
    conversation = (
        ChatConversation.query
        .filter_by(visitor_id=visitor, status="active")
        .order_by(ChatConversation.created_at.desc())
        .first()
    )
    return jsonify(
        conversation=conversation.to_dict() if conversation else None,
        messages=[m.to_dict() for m in conversation.messages] if conversation else [],
    ), 200
