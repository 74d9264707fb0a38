from datetime import datetime
from models.db import db

class RateLimitCounter(db.Model):
    """Fixed-window counter for one (client, action) pair.

    Expired windows are not cleaned up; the next hit simply restarts the window.
    """

    __tablename__ = "rate_limit_counters"

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.String(64), nullable=False)
    action = db.Column(db.String(64), nullable=False)

    window_start = db.Column(db.DateTime, nullable=False)
    count = db.Column(db.Integer, default=0, nullable=False)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("client_id", "action", name="uq_rate_limit_client_action"),
    )
