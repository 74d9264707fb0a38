from datetime import datetime, timedelta
from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.rate_limit_counter import RateLimitCounter

_FALLBACK_RULE = {"limit": 30, "window_seconds": 60}


def rate_limit_rule(action: str) -> dict:
    rules = current_app.config.get("RATE_LIMITS") or {}
    rule = rules.get(action) or current_app.config.get("RATE_LIMIT_DEFAULT") or _FALLBACK_RULE
    return {"limit": int(rule["limit"]), "window_seconds": int(rule["window_seconds"])}


def check_rate_limit(client_id: str, action: str, now=None) -> tuple[bool, int]:
    """
    Returns (allowed, retry_after_seconds).
    Fixed window per (client_id, action). Fails open if the counter store errors.
    """
    now = now or datetime.utcnow()
    client_id = (client_id or "")[:64]
    rule = rate_limit_rule(action)
    window = timedelta(seconds=rule["window_seconds"])

    try:
        row = RateLimitCounter.query.filter_by(client_id=client_id, action=action).first()
        if not row:
            row = RateLimitCounter(client_id=client_id, action=action, window_start=now, count=0)
            db.session.add(row)

        window_end = row.window_start + window

        # Window elapsed: start fresh
        if now >= window_end:
            row.window_start = now
            row.count = 0
            window_end = now + window

        row.count += 1
        count = row.count
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "Rate limit check failed for action=%s client=%s; allowing", action, client_id
        )
        return True, 0

    if count > rule["limit"]:
        retry_after = int((window_end - now).total_seconds())
        return False, max(retry_after, 1)

    return True, 0


def rate_limited_response(action: str, retry_after: int):
    rule = rate_limit_rule(action)
    resp = jsonify(error="Too many requests", retry_after=retry_after)
    resp.status_code = 429
    resp.headers["Retry-After"] = str(max(retry_after, 1))
    resp.headers["X-RateLimit-Limit"] = str(rule["limit"])
    resp.headers["X-RateLimit-Remaining"] = "0"
    return resp
