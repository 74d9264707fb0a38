import pytest

from app import create_app
from models import db
from tests.conftest import TestConfig
from utils.client_ip import client_ip


class DirectConfig(TestConfig):
    """No proxy in front: forwarding headers come from the caller."""

    __test__ = False

    TRUSTED_PROXY_HOPS = 0


@pytest.fixture()
def direct_app():
    app = create_app(DirectConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def test_forwarding_headers_ignored_without_trusted_proxy(direct_app):
    headers = {"X-Forwarded-For": "127.0.0.1", "X-Real-IP": "127.0.0.1", "CF-Connecting-IP": "127.0.0.1"}
    with direct_app.test_request_context(headers=headers, environ_base={"REMOTE_ADDR": "198.51.100.7"}):
        assert client_ip() == "198.51.100.7"


def test_spoofed_forwarded_for_keeps_rate_limit_key(direct_app):
    direct_app.config["RATE_LIMITS"] = {
        **direct_app.config["RATE_LIMITS"],
        "chatCheckBlocked": {"limit": 1, "window_seconds": 60},
    }
    client = direct_app.test_client()
    assert client.get("/live-chat/check-blocked", headers={"X-Forwarded-For": "192.0.2.1"}).status_code == 200
    assert client.get("/live-chat/check-blocked", headers={"X-Forwarded-For": "192.0.2.2"}).status_code == 429


def test_configured_edge_header_is_used(direct_app):
    direct_app.config["CLIENT_IP_HEADER"] = "CF-Connecting-IP"
    with direct_app.test_request_context(
        headers={"CF-Connecting-IP": "203.0.113.9"},
        environ_base={"REMOTE_ADDR": "10.0.0.2"},
    ):
        assert client_ip() == "203.0.113.9"

    with direct_app.test_request_context(environ_base={"REMOTE_ADDR": "10.0.0.2"}):
        assert client_ip() == "10.0.0.2"


def test_remote_addr_missing_reads_unknown(direct_app):
    with direct_app.test_request_context(environ_base={"REMOTE_ADDR": ""}):
        assert client_ip() == "unknown"
