import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as livechat.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "livechat.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Operator session cookie
    AUTH_COOKIE_NAME = "livechat_operator_session"
    CSRF_COOKIE_NAME = "csrf_token"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 30 minutes (operators keep the console open)
    IDLE_TIMEOUT_SECONDS = 30 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Client address: number of reverse proxies whose X-Forwarded-For is trusted,
    # and an optional edge header (e.g. CF-Connecting-IP) set by the CDN
    TRUSTED_PROXY_HOPS = int(os.getenv("TRUSTED_PROXY_HOPS", "0"))
    CLIENT_IP_HEADER = os.getenv("CLIENT_IP_HEADER")

    # bcrypt work factor for operator passwords
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Fixed-window rate limits: action -> (max requests, window seconds)
    RATE_LIMITS = {
        "chatCheckBlocked": {"limit": 10, "window_seconds": 60},
        "chatConversation": {"limit": 4, "window_seconds": 60},
        "chatMessage": {"limit": 20, "window_seconds": 60},
        "login": {"limit": 15, "window_seconds": 60},
    }
    RATE_LIMIT_DEFAULT = {"limit": 30, "window_seconds": 60}

    # Live chat
    VISITOR_ID_KEY = "sws_live_chat_visitor_id"
    MAX_MESSAGE_LENGTH = 5000
    MAX_VISITOR_NAME_LENGTH = 30
    LIVE_CHAT_STREAM_HEARTBEAT_SECONDS = int(os.getenv("LIVE_CHAT_STREAM_HEARTBEAT_SECONDS", "15"))

    # Public site URL (used in operator notification emails)
    SITE_URL = os.getenv("SITE_URL", "http://127.0.0.1:5002")

    # New-chat email notification
    LIVE_CHAT_NOTIFY_EMAIL = os.getenv("LIVE_CHAT_NOTIFY_EMAIL")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # Logging (Flask app logger)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Schema is normally managed by Flask-Migrate; tests create it directly
    CREATE_TABLES_ON_STARTUP = False

    # Basic app settings
    DEBUG = False
