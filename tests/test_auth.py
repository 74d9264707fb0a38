from tests.conftest import OPERATOR_EMAIL, OPERATOR_PASSWORD, login, make_user


def test_login_sets_session_and_csrf_cookies(app, client):
    make_user(app, OPERATOR_EMAIL, OPERATOR_PASSWORD, roles=("OPERATOR",))
    resp = login(client, OPERATOR_EMAIL, OPERATOR_PASSWORD)
    assert resp.status_code == 200
    assert resp.get_json()["user"]["is_operator"] is True
    assert client.get_cookie("livechat_operator_session") is not None
    assert client.get_cookie("csrf_token") is not None

    me = client.get("/auth/me").get_json()["user"]
    assert me["email"] == OPERATOR_EMAIL
    assert me["roles"] == ["OPERATOR"]


def test_bad_password_rejected(app, client):
    make_user(app, OPERATOR_EMAIL, OPERATOR_PASSWORD, roles=("OPERATOR",))
    assert login(client, OPERATOR_EMAIL, "wrong").status_code == 401
    assert client.get("/auth/me").status_code == 401


def test_login_rate_limited(app, client):
    app.config["RATE_LIMITS"] = {**app.config["RATE_LIMITS"], "login": {"limit": 2, "window_seconds": 60}}
    login(client, "nobody@example.com", "x")
    login(client, "nobody@example.com", "x")
    resp = login(client, "nobody@example.com", "x")
    assert resp.status_code == 429
    assert "Retry-After" in resp.headers


def test_logout_revokes_session(operator):
    assert operator.get("/auth/me").status_code == 200
    assert operator.post("/auth/logout").status_code == 200
    assert operator.get("/auth/me").status_code == 401


def test_admin_role_passes_operator_checks(app, client):
    make_user(app, "admin@example.com", "pw-admin", roles=("ADMIN",))
    login(client, "admin@example.com", "pw-admin")
    assert client.get("/admin/live-chat/presence").status_code == 200
    assert client.get("/admin/audit-logs").status_code == 200


def test_audit_logs_admin_only(operator):
    assert operator.get("/admin/audit-logs").status_code == 403


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "database": "ok", "streams": {"presence": 0, "new-chat": 0}}
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_health_counts_open_streams(client, visitor):
    stream = visitor.get("/live-chat/presence/stream")
    next(stream.response)
    assert client.get("/health").get_json()["streams"] == {"presence": 1, "new-chat": 0}
    stream.close()
    assert client.get("/health").get_json()["streams"] == {"presence": 0, "new-chat": 0}


def test_audit_log_lists_login_events(app, client):
    make_user(app, "admin@example.com", "pw-admin", roles=("ADMIN",))
    login(client, "admin@example.com", "wrong")
    login(client, "admin@example.com", "pw-admin")

    rows = client.get("/admin/audit-logs?action=login_fail").get_json()["audit_logs"]
    assert len(rows) == 1
    assert rows[0]["metadata"] == {"email": "admin@example.com"}
