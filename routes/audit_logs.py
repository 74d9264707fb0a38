from flask import Blueprint, jsonify, request
from models.audit_log import AuditLog
from security.rbac import require_roles

audit_bp = Blueprint("audit", __name__, url_prefix="/admin")


@audit_bp.get("/audit-logs")
@require_roles("ADMIN")
def list_audit_logs():
    """Newest first; filter by ?action=, ?entity= or ?user_id=."""
    limit = max(1, min(request.args.get("limit", type=int) or 200, 500))

    q = AuditLog.query
    action = (request.args.get("action") or "").strip().upper()
    if action:
        q = q.filter(AuditLog.action == action)
    entity = (request.args.get("entity") or "").strip().lower()
    if entity:
        q = q.filter(AuditLog.entity == entity)
    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify(audit_logs=[r.to_dict() for r in rows]), 200
