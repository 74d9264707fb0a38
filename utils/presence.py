from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.live_chat_setting import LiveChatSetting, PRESENCE_SETTING_ID
from security.rbac import is_operator
from utils.audit import log_event


def get_presence() -> dict:
    """Point-in-time read of the presence singleton; offline if it is missing."""
    setting = db.session.get(LiveChatSetting, PRESENCE_SETTING_ID)
    if setting is None:
        return {"is_online": False, "updated_at": None}
    return setting.to_dict()


def set_presence(is_online: bool, user) -> tuple[bool, str | None]:
    """
    Operator-only. Returns (success, error).
    Subscribers are notified by the change feed once the update commits.
    """
    if user is None or not is_operator(user):
        return False, "Operator privileges required"
    if not isinstance(is_online, bool):
        return False, "is_online must be a boolean"

    try:
        setting = db.session.get(LiveChatSetting, PRESENCE_SETTING_ID)
        if setting is None:
            setting = LiveChatSetting(id=PRESENCE_SETTING_ID)
            db.session.add(setting)
        setting.is_online = is_online
        setting.updated_at = datetime.utcnow()
        setting.updated_by = user.id
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update live chat presence")
        return False, str(exc.orig) if getattr(exc, "orig", None) else "Failed to update presence"

    log_event(
        "PRESENCE_SET",
        user_id=user.id,
        entity="live_chat_setting",
        entity_id=PRESENCE_SETTING_ID,
        metadata={"is_online": is_online},
    )
    return True, None
