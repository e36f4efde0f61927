from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from community_portal.gate import RouteClassifier
from community_portal.services.tokens import TokenCodec
from helpers import ACCESS_SECRET, REFRESH_SECRET, cookie_header, cookie_value, login, set_cookie_headers, signup


def _past_codec(delta: timedelta) -> TokenCodec:
    past = datetime.utcnow() - delta
    return TokenCodec(ACCESS_SECRET, REFRESH_SECRET, clock=lambda: past)


def _expired_access(user_id: str, role: str = "GUEST") -> str:
    token, _ = _past_codec(timedelta(minutes=20)).sign_access(user_id, role)
    return token


def _session(client):
    """Sign up once, log in, and return (user_id, login response)."""
    user_id = signup(client).json()["user"]["id"]
    return user_id, login(client)


@pytest.mark.parametrize(
    ("path", "protected"),
    [
        ("/dashboard", True),
        ("/dashboard/", True),
        ("/dashboard/payments", True),
        ("/dashboardx", False),
        ("/api/auth/me", True),
        ("/api/auth/logout", True),
        ("/api/admin/verifications", True),
        ("/api/auth/login", False),
        ("/api/auth/login/", False),
        ("/api/auth/signup", False),
        ("/api/auth/refresh", False),
        ("/api/auth/google", False),
        ("/api/auth/google/callback", False),
        ("/api", True),
        ("/apiary", False),
        ("/health", False),
        ("/login", False),
        ("/", False),
    ],
)
def test_route_classification(settings, path, protected):
    assert RouteClassifier.from_settings(settings).is_protected(path) is protected


def test_public_routes_skip_the_gate(client):
    assert client.get("/health").status_code == 200
    # Reaches validation, not the gate
    assert client.post("/api/auth/login", json={}).status_code == 422


def test_valid_access_cookie_is_allowed_without_renewal(client):
    _, response = _session(client)

    me = client.get("/api/auth/me", headers=cookie_header(accessToken=cookie_value(response, "accessToken")))

    assert me.status_code == 200
    assert "accessToken" not in set_cookie_headers(me)


def test_bearer_access_token_is_accepted(client):
    _, response = _session(client)
    token = cookie_value(response, "accessToken")

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert me.status_code == 200


def test_bearer_header_is_used_when_access_cookie_is_stale(client):
    user_id, response = _session(client)
    token = cookie_value(response, "accessToken")

    me = client.get(
        "/api/auth/me",
        headers={**cookie_header(accessToken=_expired_access(user_id)), "Authorization": f"Bearer {token}"},
    )

    assert me.status_code == 200
    assert "accessToken" not in set_cookie_headers(me)


def test_expired_access_is_silently_renewed(client, auth):
    user_id, response = _session(client)
    refresh = cookie_value(response, "refreshToken")
    expired = _expired_access(user_id)
    live_before = [record.id for record in auth.store.find_live(user_id)]

    me = client.get("/api/auth/me", headers=cookie_header(accessToken=expired, refreshToken=refresh))

    assert me.status_code == 200
    assert me.json()["id"] == user_id
    cookies = set_cookie_headers(me)
    assert "refreshToken" not in cookies
    assert "httponly" in cookies["accessToken"].lower()
    renewed = auth.codec.verify_access(cookie_value(me, "accessToken"))
    assert renewed.subject_id == user_id
    assert renewed.expires_at > datetime.utcfromtimestamp(jwt.get_unverified_claims(expired)["exp"])
    assert [record.id for record in auth.store.find_live(user_id)] == live_before


def test_refresh_cookie_alone_renews(client):
    user_id, response = _session(client)

    me = client.get("/api/auth/me", headers=cookie_header(refreshToken=cookie_value(response, "refreshToken")))

    assert me.status_code == 200
    assert cookie_value(me, "accessToken")


def test_page_routes_renew_too(client):
    _, response = _session(client)

    page = client.get("/dashboard", headers=cookie_header(refreshToken=cookie_value(response, "refreshToken")))

    assert page.status_code == 200
    assert "text/html" in page.headers["content-type"]
    assert cookie_value(page, "accessToken")


def _denied_cookie_sets(client, auth):
    user_id, response = _session(client)
    revoked_session = login(client)
    revoked_refresh = cookie_value(revoked_session, "refreshToken")
    claims = auth.codec.verify_refresh(revoked_refresh)
    record = auth.issuer.match_refresh_token(revoked_refresh, claims.subject_id)
    auth.store.revoke(record.id)

    expired = _expired_access(user_id)
    expired_refresh, _ = _past_codec(timedelta(days=8)).sign_refresh(user_id, "GUEST")
    access_as_refresh = cookie_value(response, "accessToken")
    return {
        "missing": {},
        "malformed access": cookie_header(accessToken="garbage"),
        "expired access": cookie_header(accessToken=expired),
        "malformed refresh": cookie_header(accessToken=expired, refreshToken="garbage"),
        "expired refresh": cookie_header(accessToken=expired, refreshToken=expired_refresh),
        "revoked refresh": cookie_header(accessToken=expired, refreshToken=revoked_refresh),
        "wrong token class": cookie_header(refreshToken=access_as_refresh),
    }


def test_api_denials_are_indistinguishable(client, auth):
    responses = {
        case: client.get("/api/auth/me", headers=headers)
        for case, headers in _denied_cookie_sets(client, auth).items()
    }

    for case, response in responses.items():
        assert response.status_code == 401, case
        assert response.json() == {"detail": "Not authenticated"}, case
        assert "set-cookie" not in response.headers, case


def test_page_denials_redirect_to_login(client, auth):
    for case, headers in _denied_cookie_sets(client, auth).items():
        response = client.get("/dashboard", headers=headers, follow_redirects=False)

        assert response.status_code == 307, case
        assert response.headers["location"] == "/login", case


def test_logout_on_one_device_keeps_the_other_renewing(client):
    user_id, first = _session(client)
    second = login(client)
    client.post(
        "/api/auth/logout",
        headers=cookie_header(
            accessToken=cookie_value(first, "accessToken"),
            refreshToken=cookie_value(first, "refreshToken"),
        ),
    )
    client.cookies.clear()
    expired = _expired_access(user_id)

    first_again = client.get(
        "/api/auth/me",
        headers=cookie_header(accessToken=expired, refreshToken=cookie_value(first, "refreshToken")),
    )
    second_again = client.get(
        "/api/auth/me",
        headers=cookie_header(accessToken=expired, refreshToken=cookie_value(second, "refreshToken")),
    )

    assert first_again.status_code == 401
    assert second_again.status_code == 200
    assert cookie_value(second_again, "accessToken")


def test_concurrent_silent_renewals_leave_refresh_token_live(app, auth, client):
    user_id, response = _session(client)
    headers = cookie_header(accessToken=_expired_access(user_id), refreshToken=cookie_value(response, "refreshToken"))
    live_before = [record.id for record in auth.store.find_live(user_id)]

    def call(_):
        return TestClient(app).get("/api/auth/me", headers=headers)

    with ThreadPoolExecutor(max_workers=6) as pool:
        responses = list(pool.map(call, range(6)))

    for me in responses:
        assert me.status_code == 200
        assert auth.codec.verify_access(cookie_value(me, "accessToken")).subject_id == user_id
        assert "refreshToken" not in set_cookie_headers(me)
    assert [record.id for record in auth.store.find_live(user_id)] == live_before


def test_unexpected_gate_failure_is_a_generic_500(client, auth, monkeypatch):
    user_id, response = _session(client)

    def broken(*args, **kwargs):
        raise RuntimeError("store unreachable")

    monkeypatch.setattr(auth.issuer, "match_refresh_token", broken)
    me = client.get(
        "/api/auth/me",
        headers=cookie_header(accessToken=_expired_access(user_id), refreshToken=cookie_value(response, "refreshToken")),
    )

    assert me.status_code == 500
    assert me.json() == {"detail": "Internal server error"}
