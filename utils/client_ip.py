from flask import current_app, request

LOOPBACK_IDENTIFIERS = frozenset({"", "127.0.0.1", "::1"})


def client_ip() -> str:
    """Caller address used for rate limits, the blocklist and consented IP storage.

    ``X-Forwarded-For`` is only honoured through ProxyFix (``TRUSTED_PROXY_HOPS``),
    which has already rewritten ``remote_addr`` by the time we get here. A single
    edge header such as ``CF-Connecting-IP`` is read only when it is configured
    as ``CLIENT_IP_HEADER``.
    """
    header = current_app.config.get("CLIENT_IP_HEADER")
    if header:
        value = (request.headers.get(header) or "").split(",")[0].strip()
        if value:
            return value

    return request.remote_addr or "unknown"


def is_loopback(identifier) -> bool:
    return (identifier or "").strip() in LOOPBACK_IDENTIFIERS
