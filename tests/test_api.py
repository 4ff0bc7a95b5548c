import json

import pytest

from ballotbox.extensions import db
from ballotbox.models.access_token import TOKEN_ALPHABET
from ballotbox.models.audit_log import AuditLog
from ballotbox.services.token_authority import import_tokens


def _sse_payloads(body: bytes):
    events = [e for e in body.decode().split("\n\n") if e.startswith("event:")]
    return [json.loads(e.split("data: ", 1)[1]) for e in events]


def _add_candidate(client, headers, name="Budi Santoso", no_urut=1, **extra):
    rv = client.post("/api/candidates/", json={"name": name, "noUrut": no_urut, **extra}, headers=headers)
    assert rv.status_code == 201, rv.get_json()
    return rv.get_json()["candidate"]


def test_health(client):
    rv = client.get("/health")
    assert rv.status_code == 200
    assert rv.get_json() == {"status": "ok"}


def test_request_id_is_echoed_or_generated(client):
    rv = client.get("/health", headers={"X-Request-Id": "abc-123"})
    assert rv.headers["X-Request-Id"] == "abc-123"
    assert client.get("/health").headers["X-Request-Id"]


def test_unknown_route_uses_error_envelope(client):
    rv = client.get("/api/nope", headers={"X-Request-Id": "r-1"})
    assert rv.status_code == 404
    body = rv.get_json()
    assert body["success"] is False
    assert body["reason"] == "NOT_FOUND"
    assert body["request_id"] == "r-1"


# --- auth -------------------------------------------------------------------

def test_anonymous_session_needs_no_credentials(client):
    rv = client.post("/api/auth/session")
    assert rv.status_code == 200
    body = rv.get_json()
    assert body["role"] == "VOTER"
    assert body["access_token"]


def test_anonymous_session_failure_is_auth_unavailable(app, client, monkeypatch):
    from ballotbox.api.auth import routes

    def broken(*args, **kwargs):
        raise RuntimeError("signing key unavailable")

    monkeypatch.setattr(routes, "create_access_token", broken)
    rv = client.post("/api/auth/session")
    assert rv.status_code == 503
    assert rv.get_json()["reason"] == "AUTH_UNAVAILABLE"


def test_login_rejects_bad_password(client, admin_token):
    rv = client.post("/api/auth/login", json={"username": "admin", "password": "wrong-password"})
    assert rv.status_code == 401


def test_login_unknown_admin(client):
    rv = client.post("/api/auth/login", json={"username": "ghost", "password": "whatever-123"})
    assert rv.status_code == 401


def test_login_is_audited(app, admin_token):
    with app.app_context():
        assert AuditLog.query.filter_by(action="LOGIN_SUCCESS").count() == 1


def test_me_and_logout_revokes(client, admin_headers):
    rv = client.get("/api/auth/me", headers=admin_headers)
    assert rv.status_code == 200
    assert rv.get_json()["admin"]["username"] == "admin"

    assert client.post("/api/auth/logout", headers=admin_headers).status_code == 200

    rv = client.get("/api/auth/me", headers=admin_headers)
    assert rv.status_code == 401
    assert rv.get_json()["reason"] == "PERMISSION_DENIED"


def test_refresh_issues_new_access_token(client, admin_token):
    rv = client.post("/api/auth/login", json={"username": "admin", "password": "correct-horse-battery"})
    refresh = rv.get_json()["refresh_token"]
    rv = client.post("/api/auth/refresh", headers={"Authorization": f"Bearer {refresh}"})
    assert rv.status_code == 200
    assert rv.get_json()["access_token"]


# --- candidates -------------------------------------------------------------

def test_candidate_lifecycle(client, admin_headers):
    created = _add_candidate(client, admin_headers, vision="Safe streets", mission="Night patrols")
    assert created["votes"] == 0
    assert created["noUrut"] == 1
    assert created["photoUrl"] == "https://picsum.photos/200"

    rv = client.get(f"/api/candidates/{created['id']}")
    assert rv.status_code == 200
    assert rv.get_json()["candidate"]["name"] == "Budi Santoso"

    rv = client.delete(f"/api/candidates/{created['id']}", headers=admin_headers)
    assert rv.status_code == 200

    rv = client.get(f"/api/candidates/{created['id']}")
    assert rv.status_code == 404
    assert rv.get_json()["reason"] == "CANDIDATE_NOT_FOUND"

    rv = client.delete(f"/api/candidates/{created['id']}", headers=admin_headers)
    assert rv.status_code == 404


def test_candidates_listed_in_ballot_order(client, admin_headers):
    _add_candidate(client, admin_headers, name="Two", no_urut=2)
    _add_candidate(client, admin_headers, name="One", no_urut=1)
    rv = client.get("/api/candidates/")
    assert [c["name"] for c in rv.get_json()["candidates"]] == ["One", "Two"]


def test_candidate_validation(client, admin_headers):
    rv = client.post("/api/candidates/", json={"noUrut": 1}, headers=admin_headers)
    assert rv.status_code == 400
    body = rv.get_json()
    assert body["reason"] == "VALIDATION_ERROR"
    assert "name" in body["details"]


@pytest.mark.parametrize("who", ["nobody", "voter"])
def test_candidate_writes_need_admin(client, voter_headers, who):
    headers = voter_headers if who == "voter" else {}
    rv = client.post("/api/candidates/", json={"name": "X", "noUrut": 1}, headers=headers)
    assert rv.status_code in (401, 403)
    assert rv.get_json()["reason"] == "PERMISSION_DENIED"


# --- tokens -----------------------------------------------------------------

def test_token_batch(client, admin_headers):
    rv = client.post("/api/tokens/batch", json={"amount": 5}, headers=admin_headers)
    assert rv.status_code == 201
    body = rv.get_json()
    assert body["count"] == 5
    for t in body["tokens"]:
        assert len(t["token"]) == 6
        assert set(t["token"]) <= set(TOKEN_ALPHABET)
        assert t["isUsed"] is False
        assert t["usedAt"] is None

    rv = client.get("/api/tokens/", headers=admin_headers)
    assert rv.status_code == 200
    assert len(rv.get_json()["tokens"]) == 5
    assert rv.get_json()["stats"] == {"issued": 5, "used": 0, "unused": 5, "participationRate": 0}


def test_token_batch_limits(client, admin_headers, app):
    assert client.post("/api/tokens/batch", json={"amount": 0}, headers=admin_headers).status_code == 400
    too_many = app.config["TOKEN_BATCH_MAX"] + 1
    assert client.post("/api/tokens/batch", json={"amount": too_many}, headers=admin_headers).status_code == 400


def test_token_batch_needs_admin(client, voter_headers):
    rv = client.post("/api/tokens/batch", json={"amount": 1}, headers=voter_headers)
    assert rv.status_code == 403


def test_validate_endpoint(app, client):
    with app.app_context():
        import_tokens(["AB3X9K"])

    rv = client.post("/api/tokens/validate", json={"token": "ab3x9k"})
    assert rv.status_code == 200
    assert rv.get_json() == {"valid": True, "reason": None, "message": "Token is valid."}

    rv = client.post("/api/tokens/validate", json={"token": "ZZZZZZ"})
    assert rv.get_json()["valid"] is False
    assert rv.get_json()["reason"] == "TOKEN_NOT_FOUND"


# --- votes ------------------------------------------------------------------

def test_vote_flow(app, client, admin_headers, voter_headers):
    with app.app_context():
        import_tokens(["AB3X9K", "77QRST", "PL2M4N"])
    c1 = _add_candidate(client, admin_headers, name="One", no_urut=1)
    c2 = _add_candidate(client, admin_headers, name="Two", no_urut=2)

    rv = client.post("/api/votes/", json={"token": "AB3X9K", "candidateId": c1["id"]}, headers=voter_headers)
    assert rv.status_code == 201
    assert rv.get_json() == {"success": True, "reason": None, "message": "Your vote has been recorded."}

    rv = client.post("/api/votes/", json={"token": "AB3X9K", "candidateId": c2["id"]}, headers=voter_headers)
    assert rv.status_code == 409
    assert rv.get_json()["success"] is False
    assert rv.get_json()["reason"] == "TOKEN_ALREADY_USED"

    rv = client.post("/api/votes/", json={"token": "77QRST", "candidateId": "missing"}, headers=voter_headers)
    assert rv.status_code == 404
    assert rv.get_json()["reason"] == "CANDIDATE_NOT_FOUND"

    rv = client.post("/api/tokens/validate", json={"token": "77QRST"})
    assert rv.get_json()["valid"] is True

    votes = {c["name"]: c["votes"] for c in client.get("/api/candidates/").get_json()["candidates"]}
    assert votes == {"One": 1, "Two": 0}


def test_vote_requires_session(app, client, admin_headers):
    with app.app_context():
        import_tokens(["AB3X9K"])
    c1 = _add_candidate(client, admin_headers)

    rv = client.post("/api/votes/", json={"token": "AB3X9K", "candidateId": c1["id"]})
    assert rv.status_code == 401
    assert rv.get_json()["reason"] == "PERMISSION_DENIED"

    rv = client.post("/api/tokens/validate", json={"token": "AB3X9K"})
    assert rv.get_json()["valid"] is True


def test_vote_validation(client, voter_headers):
    rv = client.post("/api/votes/", json={"token": "AB3X9K"}, headers=voter_headers)
    assert rv.status_code == 400
    assert "candidateId" in rv.get_json()["details"]


def test_vote_is_not_audited_with_candidate(app, client, admin_headers, voter_headers):
    with app.app_context():
        import_tokens(["AB3X9K"])
    c1 = _add_candidate(client, admin_headers)
    client.post("/api/votes/", json={"token": "AB3X9K", "candidateId": c1["id"]}, headers=voter_headers)

    with app.app_context():
        for log in AuditLog.query.all():
            assert "AB3X9K" not in json.dumps(log.details or {})


# --- results and live feed ---------------------------------------------------

def test_results_dashboard(app, client, admin_headers, voter_headers):
    with app.app_context():
        import_tokens(["AAAAAA", "BBBBBB", "CCCCCC", "DDDDDD"])
    c1 = _add_candidate(client, admin_headers, name="One", no_urut=1)
    c2 = _add_candidate(client, admin_headers, name="Two", no_urut=2)
    for code, cid in (("AAAAAA", c1["id"]), ("BBBBBB", c1["id"]), ("CCCCCC", c2["id"])):
        rv = client.post("/api/votes/", json={"token": code, "candidateId": cid}, headers=voter_headers)
        assert rv.status_code == 201

    rv = client.get("/api/results/", headers=admin_headers)
    assert rv.status_code == 200
    body = rv.get_json()
    assert body["totalVotes"] == 3
    assert [(c["name"], c["votes"], c["percentage"]) for c in body["candidates"]] == [
        ("One", 2, 66.67),
        ("Two", 1, 33.33),
    ]
    assert body["tokens"] == {"issued": 4, "used": 3, "unused": 1, "participationRate": 75}


def test_results_need_admin(client, voter_headers):
    assert client.get("/api/results/", headers=voter_headers).status_code == 403


def test_candidate_stream_sends_snapshot(client, admin_headers):
    _add_candidate(client, admin_headers, name="Two", no_urut=2)
    _add_candidate(client, admin_headers, name="One", no_urut=1)

    rv = client.get("/api/candidates/stream?limit=1")
    assert rv.status_code == 200
    assert rv.mimetype == "text/event-stream"
    (snapshot,) = _sse_payloads(rv.data)
    assert [c["name"] for c in snapshot] == ["One", "Two"]


def test_token_stream_accepts_query_string_jwt(client, admin_headers, admin_token):
    client.post("/api/tokens/batch", json={"amount": 2}, headers=admin_headers)

    assert client.get("/api/tokens/stream?limit=1").status_code == 401

    rv = client.get(f"/api/tokens/stream?limit=1&jwt={admin_token}")
    assert rv.status_code == 200
    (snapshot,) = _sse_payloads(rv.data)
    assert len(snapshot) == 2
    assert {"token", "isUsed", "generatedAt", "usedAt"} <= set(snapshot[0])
