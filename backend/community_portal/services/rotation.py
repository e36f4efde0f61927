"""Explicit refresh-token rotation."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from community_portal.models.user import User
from community_portal.services.refresh_store import RefreshTokenStore
from community_portal.services.sessions import IssuedSession, SessionIssuer
from community_portal.services.tokens import TokenCodec

logger = logging.getLogger(__name__)


class RotationError(Exception):
    """Rotation failure carrying the HTTP status to answer with."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class RotationService:
    """Exchange a refresh token for a new pair, consuming the old one."""

    def __init__(self, codec: TokenCodec, issuer: SessionIssuer, store: RefreshTokenStore):
        self.codec = codec
        self.issuer = issuer
        self.store = store

    def rotate(self, db: Session, raw_token: str | None) -> tuple[User, IssuedSession]:
        if not raw_token:
            raise RotationError(400, "Refresh token is required")

        claims = self.codec.verify_refresh(raw_token)
        if claims is None:
            raise RotationError(401, "Invalid or expired refresh token")

        record = self.issuer.match_refresh_token(raw_token, claims.subject_id)
        if record is None:
            logger.warning(f"Refresh token for user {claims.subject_id} did not match a live record")
            raise RotationError(401, "Invalid or revoked refresh token")

        # Only one concurrent presentation of the same token may consume it
        if not self.store.revoke(record.id):
            logger.warning(f"Refresh token {record.id} was consumed concurrently")
            raise RotationError(401, "Invalid or revoked refresh token")

        user = db.get(User, claims.subject_id)
        if user is None:
            raise RotationError(401, "User not found")

        session = self.issuer.issue(user.id, user.role)
        logger.info(f"Rotated refresh token {record.id} -> {session.refresh_record_id}")
        return user, session
