import pytest

from app import create_app
from config import Config
from models import db
from models.user import User, Role
from security.password import hash_password

OPERATOR_EMAIL = "operator@example.com"
OPERATOR_PASSWORD = "correct horse battery staple"


class TestConfig(Config):
    __test__ = False

    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CREATE_TABLES_ON_STARTUP = True
    SMTP_HOST = None
    LIVE_CHAT_NOTIFY_EMAIL = None
    LIVE_CHAT_STREAM_HEARTBEAT_SECONDS = 1
    BCRYPT_ROUNDS = 4
    TRUSTED_PROXY_HOPS = 1
    CLIENT_IP_HEADER = None


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def visitor(app):
    """Second browser: anonymous, separate cookie jar."""
    return app.test_client()


@pytest.fixture()
def channel(app):
    return app.extensions["live_chat_channel"]


def make_user(app, email, password, roles=()):
    with app.app_context():
        user = User(email=email, password_hash=hash_password(password))
        for name in roles:
            role = Role.query.filter_by(name=name).first()
            user.roles.append(role)
        db.session.add(user)
        db.session.commit()
        return user.id


class OperatorClient:
    """Test client that logs in and echoes the CSRF cookie on writes."""

    def __init__(self, client, user_id):
        self.client = client
        self.user_id = user_id

    def _headers(self, headers=None):
        merged = dict(headers or {})
        cookie = self.client.get_cookie("csrf_token")
        if cookie is not None:
            merged["X-CSRF-Token"] = cookie.value
        return merged

    def get(self, *args, **kwargs):
        return self.client.get(*args, **kwargs)

    def post(self, *args, headers=None, **kwargs):
        return self.client.post(*args, headers=self._headers(headers), **kwargs)

    def put(self, *args, headers=None, **kwargs):
        return self.client.put(*args, headers=self._headers(headers), **kwargs)

    def delete(self, *args, headers=None, **kwargs):
        return self.client.delete(*args, headers=self._headers(headers), **kwargs)


def login(client, email, password):
    return client.post("/auth/login", json={"email": email, "password": password})


@pytest.fixture()
def operator(app, client):
    user_id = make_user(app, OPERATOR_EMAIL, OPERATOR_PASSWORD, roles=("OPERATOR",))
    resp = login(client, OPERATOR_EMAIL, OPERATOR_PASSWORD)
    assert resp.status_code == 200
    return OperatorClient(client, user_id)
