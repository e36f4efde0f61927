"""Request authorization gate with silent access-token renewal."""
from __future__ import annotations

import logging

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from community_portal.config import Settings
from community_portal.services.sessions import SessionIssuer
from community_portal.services.tokens import Identity, TokenCodec

logger = logging.getLogger(__name__)


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


def _is_under(path: str, prefix: str) -> bool:
    prefix = _normalize(prefix)
    return path == prefix or path.startswith(prefix + "/")


class RouteClassifier:
    """Decides which paths sit behind the gate."""

    def __init__(self, page_prefixes: list[str], api_prefix: str, public_api_paths: list[str]):
        self.page_prefixes = [_normalize(prefix) for prefix in page_prefixes]
        self.api_prefix = _normalize(api_prefix)
        self.public_api_paths = {_normalize(path) for path in public_api_paths}

    @classmethod
    def from_settings(cls, settings: Settings) -> "RouteClassifier":
        return cls(settings.protected_page_prefixes, settings.api_prefix, settings.public_api_paths)

    def is_api(self, path: str) -> bool:
        return _is_under(_normalize(path), self.api_prefix)

    def is_protected(self, path: str) -> bool:
        path = _normalize(path)
        if self.is_api(path):
            return path not in self.public_api_paths
        return any(_is_under(path, prefix) for prefix in self.page_prefixes)


class AuthorizationGate:
    """ASGI middleware guarding protected routes.

    A valid access token lets the request through. Otherwise a live refresh
    token mints a replacement access token, sent back as a cookie on the
    downstream response; the refresh token itself is not rotated here.
    Authorized requests carry ``request.state.identity``. Everything else is
    rejected the same way: 401 JSON for API paths, a login redirect for pages.
    """

    def __init__(self, app: ASGIApp, *, codec: TokenCodec, issuer: SessionIssuer, settings: Settings) -> None:
        self.app = app
        self.codec = codec
        self.issuer = issuer
        self.settings = settings
        self.routes = RouteClassifier.from_settings(settings)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http" or not self.routes.is_protected(scope.get("path") or "/"):
            await self.app(scope, receive, send)
            return

        path = scope.get("path") or "/"
        request = Request(scope)
        try:
            identity, renewed_token = await self.authorize(request)
        except Exception:
            logger.exception(f"Authorization failed unexpectedly for {path}")
            response = JSONResponse(status_code=500, content={"detail": "Internal server error"})
            await response(scope, receive, send)
            return

        if identity is None:
            await self.reject(path)(scope, receive, send)
            return

        scope.setdefault("state", {})["identity"] = identity
        if renewed_token is None:
            await self.app(scope, receive, send)
            return

        cookie_headers = self._access_cookie_headers(renewed_token)
        cookie_prefix = f"{self.settings.access_cookie_name}=".encode("latin-1")

        async def send_with_cookie(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers = list(message.get("headers") or [])
                # The handler's own access cookie (e.g. a logout deletion) wins
                if not any(key.lower() == b"set-cookie" and value.startswith(cookie_prefix) for key, value in headers):
                    headers += cookie_headers
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_cookie)

    def _access_tokens(self, request: Request) -> list[str]:
        """Access token candidates: the cookie first, then a Bearer header."""
        tokens = []
        cookie = request.cookies.get(self.settings.access_cookie_name)
        if cookie:
            tokens.append(cookie)
        scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            tokens.append(credentials.strip())
        return tokens

    async def authorize(self, request: Request) -> tuple[Identity | None, str | None]:
        """Resolve the caller's identity, plus a replacement access token if one was minted."""
        for token in self._access_tokens(request):
            claims = self.codec.verify_access(token)
            if claims is not None:
                return claims.identity, None

        raw_refresh = request.cookies.get(self.settings.refresh_cookie_name)
        refresh_claims = self.codec.verify_refresh(raw_refresh)
        if refresh_claims is None:
            return None, None

        record = await run_in_threadpool(
            self.issuer.match_refresh_token, raw_refresh, refresh_claims.subject_id
        )
        if record is None:
            return None, None

        access_token, _ = self.codec.sign_access(refresh_claims.subject_id, refresh_claims.role)
        logger.debug(f"Renewed access token for user {refresh_claims.subject_id} via refresh token {record.id}")
        return refresh_claims.identity, access_token

    def reject(self, path: str) -> Response:
        if self.routes.is_api(path):
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated"},
                headers={"WWW-Authenticate": "Bearer"},
            )
        return RedirectResponse(self.settings.login_path, status_code=307)

    def _access_cookie_headers(self, access_token: str) -> list[tuple[bytes, bytes]]:
        carrier = Response()
        self.issuer.set_access_cookie(carrier, access_token)
        return [(key, value) for key, value in carrier.raw_headers if key == b"set-cookie"]
