import smtplib
from email.message import EmailMessage

from flask import current_app


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email or not to_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        return False, str(exc)


def _truncate(value: str, limit: int) -> str:
    return value if len(value) <= limit else value[: limit - 3] + "..."


def build_new_chat_message(conversation_id: str, visitor_id: str, source_url=None):
    site_url = (current_app.config.get("SITE_URL") or "").rstrip("/")
    admin_url = f"{site_url}/admin/live-chat?conversation={conversation_id}"

    lines = ["New live chat!", f"Visitor: {visitor_id[:8]}..."]
    if source_url:
        lines.append(f"From: {_truncate(source_url, 60)}")
    lines.extend(["", admin_url])
    return "New live chat conversation", "\n".join(lines)


def notify_new_conversation(conversation_id: str, visitor_id: str, source_url=None, is_reopen=False):
    """
    Fire-and-forget operator alert. Returns (sent, skipped_reason).
    Never raises: a failed send is logged and reported as not sent.
    """
    if is_reopen:
        return False, "reopen"

    to_email = current_app.config.get("LIVE_CHAT_NOTIFY_EMAIL")
    if not to_email or not current_app.config.get("SMTP_HOST"):
        current_app.logger.info("Live chat email notification not configured; skipping")
        return False, "not_configured"

    subject, body = build_new_chat_message(conversation_id, visitor_id, source_url)
    ok, error = send_email(to_email, subject, body)
    if not ok:
        current_app.logger.warning("Live chat email notification failed: %s", error)
        return False, error
    return True, None
