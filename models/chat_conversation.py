import uuid
from datetime import datetime
from models.db import db

CONVERSATION_STATUSES = ("active", "closed", "archived")


def _new_id() -> str:
    return str(uuid.uuid4())


class ChatConversation(db.Model):
    __tablename__ = "chat_conversations"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    visitor_id = db.Column(db.String(36), nullable=False, index=True)
    visitor_name = db.Column(db.String(30), nullable=True)
    visitor_email = db.Column(db.String(255), nullable=True)
    visitor_ip = db.Column(db.String(64), nullable=True)  # only with consent

    post_id = db.Column(db.String(64), nullable=True)
    source_url = db.Column(db.String(2048), nullable=True)

    status = db.Column(db.String(20), nullable=False, default="active", index=True)
    last_message_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    messages = db.relationship(
        "ChatMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
    )

    @property
    def visitor_label(self) -> str:
        return self.visitor_name or f"Visitor {self.visitor_id[:8]}"

    def to_dict(self):
        return {
            "id": self.id,
            "visitor_id": self.visitor_id,
            "visitor_name": self.visitor_name,
            "visitor_email": self.visitor_email,
            "visitor_ip": self.visitor_ip,
            "post_id": self.post_id,
            "source_url": self.source_url,
            "status": self.status,
            "last_message_at": self.last_message_at.isoformat() if self.last_message_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
