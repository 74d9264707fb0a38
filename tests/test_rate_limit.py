from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError

import security.rate_limit as rate_limit
from security.rate_limit import check_rate_limit, rate_limit_rule

IP = "203.0.113.5"


def _with_limit(app, action, limit, window_seconds=60):
    app.config["RATE_LIMITS"] = {
        **app.config["RATE_LIMITS"],
        action: {"limit": limit, "window_seconds": window_seconds},
    }


def test_ceiling_then_blocked_with_remaining_window(app):
    _with_limit(app, "chatCheckBlocked", 5)
    t0 = datetime(2026, 10, 1, 12, 0, 0)
    with app.app_context():
        for i in range(5):
            assert check_rate_limit(IP, "chatCheckBlocked", now=t0 + timedelta(seconds=i)) == (True, 0)

        allowed, retry_after = check_rate_limit(IP, "chatCheckBlocked", now=t0 + timedelta(seconds=10))
        assert allowed is False
        assert retry_after == 50


def test_window_elapsed_resets_to_fresh_count(app):
    _with_limit(app, "chatCheckBlocked", 2)
    t0 = datetime(2026, 10, 1, 12, 0, 0)
    with app.app_context():
        check_rate_limit(IP, "chatCheckBlocked", now=t0)
        check_rate_limit(IP, "chatCheckBlocked", now=t0)
        assert check_rate_limit(IP, "chatCheckBlocked", now=t0)[0] is False

        later = t0 + timedelta(seconds=61)
        assert check_rate_limit(IP, "chatCheckBlocked", now=later) == (True, 0)

        row = rate_limit.RateLimitCounter.query.filter_by(client_id=IP, action="chatCheckBlocked").one()
        assert row.count == 1
        assert row.window_start == later


def test_counters_are_per_action_and_per_client(app):
    _with_limit(app, "chatMessage", 1)
    t0 = datetime(2026, 10, 1, 12, 0, 0)
    with app.app_context():
        assert check_rate_limit(IP, "chatMessage", now=t0)[0] is True
        assert check_rate_limit(IP, "chatMessage", now=t0)[0] is False
        assert check_rate_limit("198.51.100.7", "chatMessage", now=t0)[0] is True
        assert check_rate_limit(IP, "chatCheckBlocked", now=t0)[0] is True


def test_unknown_action_uses_default_rule(app):
    with app.app_context():
        assert rate_limit_rule("somethingElse") == {"limit": 30, "window_seconds": 60}
        assert rate_limit_rule("chatConversation") == {"limit": 4, "window_seconds": 60}


class _BrokenQuery:
    def filter_by(self, **kwargs):
        raise OperationalError("SELECT", {}, Exception("counter store down"))


class _BrokenCounter:
    query = _BrokenQuery()


def test_store_failure_fails_open_and_logs(app, monkeypatch, caplog):
    monkeypatch.setattr(rate_limit, "RateLimitCounter", _BrokenCounter)
    with app.app_context():
        assert check_rate_limit(IP, "chatCheckBlocked") == (True, 0)
    assert "Rate limit check failed" in caplog.text
