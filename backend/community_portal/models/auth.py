"""Authentication/session models."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from community_portal.database import Base


class RefreshToken(Base):
    """Issued refresh token, stored as a one-way hash only."""

    __tablename__ = "refresh_tokens"
    __table_args__ = (
        Index("ix_refresh_tokens_user_live", "user_id", "revoked", "expires_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(255), nullable=False)
    expires_at = Column(String(26), nullable=False)
    revoked = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())

    user = relationship("User", back_populates="refresh_tokens")
