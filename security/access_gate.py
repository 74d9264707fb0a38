from typing import NamedTuple

from security.rate_limit import check_rate_limit
from utils.blocklist import is_ip_blocked
from utils.client_ip import is_loopback


class GateDecision(NamedTuple):
    allowed: bool
    blocked: bool = False
    retry_after: int = 0


def check_access(client_id: str, action: str) -> GateDecision:
    """Rate limit first, then the IP blocklist.

    Loopback callers are still rate limited but never blocklisted. Store
    failures in either step resolve to allowed.
    """
    allowed, retry_after = check_rate_limit(client_id, action)
    if not allowed:
        return GateDecision(allowed=False, retry_after=retry_after)

    if is_loopback(client_id):
        return GateDecision(allowed=True)

    if is_ip_blocked(client_id):
        return GateDecision(allowed=False, blocked=True)

    return GateDecision(allowed=True)
