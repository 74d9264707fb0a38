import utils.emailer as emailer
from utils.emailer import build_new_chat_message, notify_new_conversation

CONV_ID = "5b0c1f8e-2f57-4a51-9a77-3c1e0b7a0d11"
VISITOR_ID = "9f1d2c3b-4a5e-4f60-8a7b-1c2d3e4f5a6b"


def _configure(app):
    app.config.update(
        SMTP_HOST="smtp.example.com",
        SMTP_FROM_EMAIL="chat@example.com",
        LIVE_CHAT_NOTIFY_EMAIL="owner@example.com",
        SITE_URL="https://blog.example.com/",
    )


def test_message_links_to_admin_console(app):
    _configure(app)
    with app.app_context():
        subject, body = build_new_chat_message(CONV_ID, VISITOR_ID, "https://blog.example.com/" + "p" * 80)
    assert subject == "New live chat conversation"
    assert "Visitor: 9f1d2c3b..." in body
    assert f"https://blog.example.com/admin/live-chat?conversation={CONV_ID}" in body
    assert any(line.startswith("From: ") and line.endswith("...") for line in body.splitlines())


def test_notify_sends_when_configured(app, monkeypatch):
    _configure(app)
    sent = []
    monkeypatch.setattr(emailer, "send_email", lambda to, subject, body: sent.append(to) or (True, None))
    with app.app_context():
        assert notify_new_conversation(CONV_ID, VISITOR_ID) == (True, None)
    assert sent == ["owner@example.com"]


def test_notify_skips_reopen_and_unconfigured(app, monkeypatch):
    sent = []
    monkeypatch.setattr(emailer, "send_email", lambda *a: sent.append(a) or (True, None))
    with app.app_context():
        assert notify_new_conversation(CONV_ID, VISITOR_ID) == (False, "not_configured")
        _configure(app)
        assert notify_new_conversation(CONV_ID, VISITOR_ID, is_reopen=True) == (False, "reopen")
    assert sent == []


def test_notify_failure_is_logged_not_raised(app, monkeypatch, caplog):
    _configure(app)
    monkeypatch.setattr(emailer, "send_email", lambda *a: (False, "connection refused"))
    with app.app_context():
        assert notify_new_conversation(CONV_ID, VISITOR_ID) == (False, "connection refused")
    assert "Live chat email notification failed" in caplog.text
