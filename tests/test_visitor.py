import re

from utils.visitor import get_or_create_visitor_id, is_valid_uuid

V4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")
KEY = "sws_live_chat_visitor_id"


def test_creates_once_then_returns_same_id():
    storage = {}
    first = get_or_create_visitor_id(storage)
    assert V4.match(first)
    assert storage[KEY] == first
    assert get_or_create_visitor_id(storage) == first
    assert get_or_create_visitor_id(storage) == first


def test_separate_storage_scopes_get_different_ids():
    assert get_or_create_visitor_id({}) != get_or_create_visitor_id({})


def test_malformed_stored_value_is_replaced():
    storage = {KEY: "not-a-uuid"}
    visitor_id = get_or_create_visitor_id(storage)
    assert V4.match(visitor_id)
    assert storage[KEY] == visitor_id


def test_is_valid_uuid():
    assert is_valid_uuid("5B0C1F8E-2F57-4A51-9A77-3C1E0B7A0D11")
    assert not is_valid_uuid("5b0c1f8e2f574a519a773c1e0b7a0d11")
    assert not is_valid_uuid(None)


def test_endpoint_persists_id_in_session_cookie(client):
    first = client.get("/live-chat/visitor-id").get_json()["visitor_id"]
    second = client.get("/live-chat/visitor-id").get_json()["visitor_id"]
    assert V4.match(first)
    assert first == second


def test_endpoint_ids_differ_between_browsers(app):
    a = app.test_client().get("/live-chat/visitor-id").get_json()["visitor_id"]
    b = app.test_client().get("/live-chat/visitor-id").get_json()["visitor_id"]
    assert a != b
