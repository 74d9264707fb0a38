from .health import health_bp
from .auth import auth_bp
from .live_chat import live_chat_bp
from .live_chat_admin import live_chat_admin_bp
from .audit_logs import audit_bp
