"""Session issuance: token pair, persisted refresh hash and transport cookies."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from starlette.responses import Response

from community_portal.config import Settings
from community_portal.services.credentials import CredentialHasher
from community_portal.services.refresh_store import RefreshTokenRecord, RefreshTokenStore
from community_portal.services.tokens import TokenCodec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime
    refresh_record_id: str


class SessionIssuer:
    """Mints sessions for already-authenticated subjects."""

    def __init__(
        self,
        codec: TokenCodec,
        store: RefreshTokenStore,
        hasher: CredentialHasher,
        settings: Settings,
    ):
        self.codec = codec
        self.store = store
        self.hasher = hasher
        self.settings = settings

    def issue(self, subject_id: str, role: str) -> IssuedSession:
        """Sign a new pair and persist the refresh token's hash.

        Prior sessions of the subject are left untouched.
        """
        access_token, access_expires_at = self.codec.sign_access(subject_id, role)
        refresh_token, refresh_expires_at = self.codec.sign_refresh(subject_id, role)
        record = self.store.issue(subject_id, self.hasher.hash(refresh_token), refresh_expires_at)
        logger.info(f"Issued session for user {subject_id} (refresh token {record.id})")
        return IssuedSession(
            access_token=access_token,
            access_expires_at=access_expires_at,
            refresh_token=refresh_token,
            refresh_expires_at=refresh_expires_at,
            refresh_record_id=record.id,
        )

    def match_refresh_token(self, raw_token: str, subject_id: str) -> RefreshTokenRecord | None:
        """Find the live record whose hash matches the raw token.

        Hashes are salted per record, so every live record of the subject is
        compared in turn.
        """
        for record in self.store.find_live(subject_id):
            if self.hasher.verify(raw_token, record.hashed_value):
                return record
        return None

    def _set_cookie(self, response: Response, key: str, value: str, max_age: int) -> None:
        response.set_cookie(
            key=key,
            value=value,
            max_age=max_age,
            path=self.settings.cookie_path,
            secure=self.settings.cookie_secure,
            httponly=True,
            samesite=self.settings.cookie_samesite,
        )

    def set_access_cookie(self, response: Response, access_token: str) -> None:
        """Issue HttpOnly access-token cookie."""
        self._set_cookie(
            response,
            self.settings.access_cookie_name,
            access_token,
            int(self.codec.access_ttl.total_seconds()),
        )

    def set_session_cookies(self, response: Response, session: IssuedSession) -> None:
        """Issue HttpOnly access and refresh cookies."""
        self.set_access_cookie(response, session.access_token)
        self._set_cookie(
            response,
            self.settings.refresh_cookie_name,
            session.refresh_token,
            int(self.codec.refresh_ttl.total_seconds()),
        )

    def clear_session_cookies(self, response: Response) -> None:
        """Clear both session cookies."""
        for key in (self.settings.access_cookie_name, self.settings.refresh_cookie_name):
            response.delete_cookie(
                key=key,
                path=self.settings.cookie_path,
                secure=self.settings.cookie_secure,
                httponly=True,
                samesite=self.settings.cookie_samesite,
            )
