"""Google OAuth code exchange."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class OAuthError(Exception):
    """The provider refused the exchange or returned an unusable profile."""


@dataclass(frozen=True)
class GoogleProfile:
    google_id: str | None
    email: str
    name: str
    picture: str | None = None


class GoogleOAuthClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.transport = transport
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "access_type": "online",
            "prompt": "select_account",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def fetch_profile(self, code: str) -> GoogleProfile:
        """Exchange an authorization code for the user's Google profile."""
        try:
            with httpx.Client(transport=self.transport, timeout=self.timeout) as http:
                token_res = http.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                if token_res.status_code != 200:
                    raise OAuthError(f"Token exchange failed with status {token_res.status_code}")
                access_token = token_res.json().get("access_token")
                if not access_token:
                    raise OAuthError("Token exchange returned no access token")

                profile_res = http.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                if profile_res.status_code != 200:
                    raise OAuthError(f"Userinfo request failed with status {profile_res.status_code}")
                data = profile_res.json()
        except httpx.HTTPError as exc:
            raise OAuthError(f"Google request failed: {exc.__class__.__name__}") from exc

        email = data.get("email")
        if not email:
            raise OAuthError("Google profile has no email (scope must include email)")

        return GoogleProfile(
            google_id=data.get("id"),
            email=email.lower(),
            name=data.get("name") or data.get("given_name") or email.split("@", 1)[0],
            picture=data.get("picture"),
        )
