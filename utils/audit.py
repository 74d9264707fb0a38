import json
from flask import current_app, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.audit_log import AuditLog
from utils.client_ip import client_ip

def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None) -> bool:
    """Append an audit row. The audited change is already committed, so a failed
    write is logged and reported as False rather than raised."""
    ip = user_agent = None
    if has_request_context():
        ip = client_ip()[:64]
        user_agent = (request.headers.get("User-Agent") or "")[:255] or None

    db.session.add(AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    ))
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to write audit event %s", action)
        return False
    return True
