from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.blocked_ip import BlockedIP


def normalize_ip(value: str) -> str:
    return (value or "").strip().lower()


def is_ip_blocked(ip: str) -> bool:
    """Exact-match lookup. A missing row and a failed lookup both mean not blocked."""
    address = normalize_ip(ip)
    if not address:
        return False
    try:
        return BlockedIP.query.filter_by(ip_address=address).first() is not None
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Blocked IP lookup failed for %s; treating as not blocked", address)
        return False
