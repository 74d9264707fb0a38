from flask import Flask, request, g
from flask_migrate import Migrate
from werkzeug.middleware.proxy_fix import ProxyFix
from sqlalchemy import inspect

from config import Config
from routes import health_bp, auth_bp, live_chat_bp, live_chat_admin_bp, audit_bp

from models import db
from realtime.channel import LiveChatChannel
from realtime.feed import CHANNEL_EXTENSION, INBOX_EXTENSION, install_change_feed
from realtime.notifications import InboxRegistry
from utils.seed import seed_roles, seed_presence_setting
from utils.auth_context import load_current_user
from security.csrf import require_csrf
from utils.validation import ValidationError, validation_error_response


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Only trust X-Forwarded-* from the configured number of proxies in front of us
    hops = app.config.get("TRUSTED_PROXY_HOPS", 0)
    if hops:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(live_chat_bp)
    app.register_blueprint(live_chat_admin_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Live chat channel + change feed (committed rows -> subscribers)
    channel = LiveChatChannel()
    app.extensions[CHANNEL_EXTENSION] = channel
    app.extensions[INBOX_EXTENSION] = InboxRegistry(channel)
    install_change_feed()

    with app.app_context():
        if app.config.get("CREATE_TABLES_ON_STARTUP"):
            db.create_all()
        # Seed roles + presence singleton once the schema exists (safe & idempotent)
        if inspect(db.engine).has_table("live_chat_settings"):
            seed_roles()
            seed_presence_setting()

    @app.before_request
    def _load_user():
        load_current_user()

    CSRF_EXEMPT_PATHS = {
        "/auth/login",
        "/health",
    }

    @app.before_request
    def _csrf_protect():
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Visitors are anonymous; only operator cookie sessions carry CSRF
            if getattr(g, "user", None) is not None:
                failure = require_csrf()
                if failure:
                    return failure

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    app.register_error_handler(ValidationError, validation_error_response)

    register_cli(app)

    return app

#-------------------------
import click
from models.user import User, Role
from security.password import hash_password
from utils.audit import log_event

def register_cli(app):
    @app.cli.command("create-operator")
    @click.argument("email")
    @click.argument("password")
    @click.option("--admin", is_flag=True, help="Also grant the ADMIN role.")
    def create_operator(email, password, admin):
        """Create an operator account, or grant operator roles to an existing one."""
        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()
        created = user is None
        if created:
            user = User(email=email, password_hash=hash_password(password))
            db.session.add(user)

        wanted = ["OPERATOR", "ADMIN"] if admin else ["OPERATOR"]
        for name in wanted:
            role = Role.query.filter_by(name=name).first()
            if not role:
                role = Role(name=name)
                db.session.add(role)
            if role not in user.roles:
                user.roles.append(role)
        db.session.commit()

        log_event(
            "OPERATOR_CREATE" if created else "OPERATOR_GRANT",
            entity="user",
            entity_id=user.id,
            metadata={"roles": sorted(user.role_names)},
        )
        click.echo(f"{user.email} has roles: {', '.join(sorted(user.role_names))}")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally (threaded: presence/notification streams hold a worker each)
    app.run(host="127.0.0.1", port=5002, threaded=True)
