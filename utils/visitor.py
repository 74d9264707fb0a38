import re
import uuid

from flask import current_app, session

DEFAULT_VISITOR_ID_KEY = "sws_live_chat_visitor_id"

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def is_valid_uuid(value) -> bool:
    return isinstance(value, str) and UUID_PATTERN.match(value) is not None


def generate_visitor_id() -> str:
    # Pseudonymous grouping key, not a security token.
    return str(uuid.uuid4())


def _storage_key() -> str:
    try:
        return current_app.config.get("VISITOR_ID_KEY", DEFAULT_VISITOR_ID_KEY)
    except RuntimeError:
        return DEFAULT_VISITOR_ID_KEY


def get_or_create_visitor_id(storage=None) -> str:
    """Return the visitor id held in ``storage``, creating one on first use.

    ``storage`` is any mutable mapping scoped to one browser; the signed
    Flask session cookie is used by default.
    """
    if storage is None:
        storage = session
    key = _storage_key()

    visitor_id = storage.get(key)
    if not is_valid_uuid(visitor_id):
        visitor_id = generate_visitor_id()
        storage[key] = visitor_id
        if storage is session:
            session.permanent = True
    return visitor_id
