from datetime import datetime

from flask import Blueprint, jsonify, current_app, g

from models import db
from models.user import User
from security.csrf import issue_csrf_token, clear_csrf_token
from security.password import verify_password
from security.rate_limit import check_rate_limit, rate_limited_response
from security.rbac import is_operator
from security.session import create_session, revoke_session, revoke_all_sessions, session_token_from_request
from utils.audit import log_event
from utils.auth_context import login_required
from utils.client_ip import client_ip
from utils.validation import json_object, text_field
from realtime.feed import get_inboxes

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "roles": sorted(user.role_names),
        "is_operator": is_operator(user),
    }


@auth_bp.post("/login")
def login():
    data = json_object()
    email = text_field(data, "email").lower()
    password = data.get("password") if isinstance(data.get("password"), str) else ""

    allowed, retry_after = check_rate_limit(client_ip(), "login")
    if not allowed:
        log_event("LOGIN_RATE_LIMIT", metadata={"email": email, "retry_after": retry_after})
        return rate_limited_response("login", retry_after)

    user = User.query.filter_by(email=email).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    # Rotate: one live session per operator
    revoke_all_sessions(user.id)
    raw_token = create_session(user.id)

    user.last_login_at = datetime.utcnow()
    db.session.commit()
    log_event("LOGIN_SUCCESS", user_id=user.id)

    resp = jsonify(message="Login OK", user=_user_payload(user))
    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "livechat_operator_session"),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    return issue_csrf_token(resp), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "livechat_operator_session")
    revoke_session(session_token_from_request())

    get_inboxes().discard(g.user.id)

    log_event("LOGOUT", user_id=g.user.id)
    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    return clear_csrf_token(resp), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(user=_user_payload(g.user)), 200
