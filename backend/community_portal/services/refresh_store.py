"""Persisted refresh-token records."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import sessionmaker

from community_portal.database import session_scope
from community_portal.models.auth import RefreshToken
from community_portal.services.tokens import utcnow

logger = logging.getLogger(__name__)


def to_iso(value: datetime) -> str:
    """Fixed-width ISO timestamp so stored values compare as strings."""
    return value.isoformat(timespec="microseconds")


@dataclass(frozen=True)
class RefreshTokenRecord:
    id: str
    subject_id: str
    hashed_value: str
    expires_at: datetime
    revoked: bool
    created_at: datetime | None

    @classmethod
    def from_row(cls, row: RefreshToken) -> "RefreshTokenRecord":
        return cls(
            id=row.id,
            subject_id=row.user_id,
            hashed_value=row.token_hash,
            expires_at=datetime.fromisoformat(row.expires_at),
            revoked=bool(row.revoked),
            created_at=datetime.fromisoformat(row.created_at) if row.created_at else None,
        )


class RefreshTokenStore:
    """Append-only refresh-token records; the only mutation is revoking."""

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime] = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def issue(self, subject_id: str, hashed_value: str, expires_at: datetime) -> RefreshTokenRecord:
        """Insert a new live record."""
        with session_scope(self.session_factory) as db:
            row = RefreshToken(
                user_id=subject_id,
                token_hash=hashed_value,
                expires_at=to_iso(expires_at),
                revoked=False,
                created_at=to_iso(self.clock()),
            )
            db.add(row)
            db.flush()
            record = RefreshTokenRecord.from_row(row)
        logger.debug(f"Issued refresh token {record.id} for user {subject_id}")
        return record

    def find_live(self, subject_id: str) -> list[RefreshTokenRecord]:
        """All records for a subject that are neither revoked nor expired."""
        now = to_iso(self.clock())
        with session_scope(self.session_factory) as db:
            rows = (
                db.query(RefreshToken)
                .filter(
                    RefreshToken.user_id == subject_id,
                    RefreshToken.revoked.is_(False),
                    RefreshToken.expires_at > now,
                )
                .order_by(RefreshToken.created_at.desc())
                .all()
            )
            return [RefreshTokenRecord.from_row(row) for row in rows]

    def revoke(self, token_id: str) -> bool:
        """Revoke a record.

        Conditional on the record still being live, so concurrent callers
        cannot both consume it. Returns True only for the call that flipped it.
        """
        with session_scope(self.session_factory) as db:
            result = db.execute(
                update(RefreshToken)
                .where(RefreshToken.id == token_id, RefreshToken.revoked.is_(False))
                .values(revoked=True)
                .execution_options(synchronize_session=False)
            )
            consumed = result.rowcount == 1
        if consumed:
            logger.debug(f"Revoked refresh token {token_id}")
        return consumed

    def revoke_all(self, subject_id: str) -> int:
        """Revoke every unrevoked record of a subject; returns how many flipped."""
        with session_scope(self.session_factory) as db:
            result = db.execute(
                update(RefreshToken)
                .where(RefreshToken.user_id == subject_id, RefreshToken.revoked.is_(False))
                .values(revoked=True)
                .execution_options(synchronize_session=False)
            )
            count = result.rowcount
        logger.info(f"Revoked {count} refresh tokens for user {subject_id}")
        return count
