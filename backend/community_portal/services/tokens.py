"""Signing and verification of access and refresh tokens."""
from __future__ import annotations

import calendar
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


def utcnow() -> datetime:
    return datetime.utcnow()


def _timestamp(value: datetime) -> int:
    return calendar.timegm(value.utctimetuple())


@dataclass(frozen=True)
class Identity:
    """Authenticated subject handed to downstream handlers."""

    subject_id: str
    role: str


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    role: str
    issued_at: datetime
    expires_at: datetime
    token_id: str | None = None

    @property
    def identity(self) -> Identity:
        return Identity(subject_id=self.subject_id, role=self.role)


class TokenCodec:
    """Two classes of signed, expiring tokens on two independent keys.

    Verification never raises: any failure (bad signature, tampering,
    expiry, wrong token class) yields ``None``.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = utcnow,
    ):
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must be signed with different keys")
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self.algorithm = algorithm
        self.clock = clock

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[ACCESS]

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[REFRESH]

    def _sign(self, token_type: str, subject_id: str, role: str, extra: dict | None = None) -> tuple[str, datetime]:
        issued_at = self.clock().replace(microsecond=0)
        expires_at = issued_at + self._ttls[token_type]
        payload = {
            "sub": str(subject_id),
            "role": role,
            "typ": token_type,
            "iat": _timestamp(issued_at),
            "exp": _timestamp(expires_at),
        }
        if extra:
            payload.update(extra)
        token = jwt.encode(payload, self._secrets[token_type], algorithm=self.algorithm)
        return token, expires_at

    def _verify(self, token_type: str, token: str | None) -> TokenClaims | None:
        if not token:
            return None
        try:
            payload = jwt.decode(token, self._secrets[token_type], algorithms=[self.algorithm])
        except JWTError as exc:
            logger.debug(f"Rejected {token_type} token: {exc.__class__.__name__}")
            return None

        if payload.get("typ") != token_type:
            return None
        subject_id = payload.get("sub")
        role = payload.get("role")
        if not subject_id or not role or "exp" not in payload:
            return None

        return TokenClaims(
            subject_id=subject_id,
            role=role,
            issued_at=datetime.utcfromtimestamp(payload.get("iat", payload["exp"])),
            expires_at=datetime.utcfromtimestamp(payload["exp"]),
            token_id=payload.get("jti"),
        )

    def sign_access(self, subject_id: str, role: str) -> tuple[str, datetime]:
        """Sign an access token; returns the token and its expiry."""
        return self._sign(ACCESS, subject_id, role)

    def sign_refresh(self, subject_id: str, role: str) -> tuple[str, datetime]:
        """Sign a refresh token; returns the token and its expiry."""
        return self._sign(REFRESH, subject_id, role, {"jti": str(uuid.uuid4())})

    def verify_access(self, token: str | None) -> TokenClaims | None:
        return self._verify(ACCESS, token)

    def verify_refresh(self, token: str | None) -> TokenClaims | None:
        return self._verify(REFRESH, token)
