from functools import wraps
from flask import current_app, g, jsonify
from security.session import get_session_from_request
from models import db
from models.user import User

def load_current_user():
    g.user = None
    g.session = get_session_from_request()
    if not g.session:
        return

    user = db.session.get(User, g.session.user_id)
    if user is None or not user.is_active:
        current_app.logger.info("Ignoring session %s for disabled operator", g.session.id)
        return
    g.user = user

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
