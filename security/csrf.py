import hmac
import secrets
from flask import request, jsonify, current_app

CSRF_HEADER = "X-CSRF-Token"

def _cookie_name() -> str:
    return current_app.config.get("CSRF_COOKIE_NAME", "csrf_token")

def issue_csrf_token(resp):
    """Double-submit token for the operator console; lives as long as the login."""
    resp.set_cookie(
        _cookie_name(),
        secrets.token_urlsafe(32),
        httponly=False,  # console JS echoes it back in the header
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    return resp

def clear_csrf_token(resp):
    resp.delete_cookie(_cookie_name(), path="/")
    return resp

def require_csrf():
    cookie_token = request.cookies.get(_cookie_name())
    header_token = request.headers.get(CSRF_HEADER)
    if not cookie_token or not header_token or not hmac.compare_digest(cookie_token, header_token):
        current_app.logger.warning("CSRF validation failed for %s %s", request.method, request.path)
        return jsonify(error="CSRF validation failed"), 403
    return None
