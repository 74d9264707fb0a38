from datetime import datetime
from models.db import db

PRESENCE_SETTING_ID = 1


class LiveChatSetting(db.Model):
    __tablename__ = "live_chat_settings"

    id = db.Column(db.Integer, primary_key=True, default=PRESENCE_SETTING_ID)
    is_online = db.Column(db.Boolean, default=False, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        # Singleton row
        db.CheckConstraint(f"id = {PRESENCE_SETTING_ID}", name="ck_live_chat_settings_singleton"),
    )

    def to_dict(self):
        return {
            "is_online": bool(self.is_online),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
