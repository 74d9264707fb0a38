from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from models import db
from realtime.channel import TOPIC_NEW_CHAT, TOPIC_PRESENCE
from realtime.feed import get_channel

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        db.session.rollback()
        database = "unavailable"
    status = 200 if database == "ok" else 503

    channel = get_channel()
    return jsonify(
        status="ok" if status == 200 else "degraded",
        database=database,
        streams={
            TOPIC_PRESENCE: channel.subscriber_count(TOPIC_PRESENCE),
            TOPIC_NEW_CHAT: channel.subscriber_count(TOPIC_NEW_CHAT),
        },
    ), status
