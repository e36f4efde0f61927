"""User model."""
from enum import Enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from community_portal.database import Base


class UserRole(str, Enum):
    GUEST = "GUEST"
    RESIDENT = "RESIDENT"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class UserStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DEACTIVATED = "DEACTIVATED"


class AuthProvider(str, Enum):
    CREDENTIALS = "CREDENTIALS"
    GOOGLE = "GOOGLE"


class User(Base):
    """Community member account."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(20), unique=True, index=True)
    password_hash = Column(String(255))  # NULL for federated-only accounts
    role = Column(String(20), nullable=False, default=UserRole.GUEST.value)
    status = Column(String(20), nullable=False, default=UserStatus.PENDING.value, index=True)
    provider = Column(String(20), nullable=False, default=AuthProvider.CREDENTIALS.value)
    image = Column(String(500))
    rejection_reason = Column(Text)
    approved_by_id = Column(String(36))
    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())
    updated_at = Column(String(26), default=lambda: datetime.utcnow().isoformat(), onupdate=lambda: datetime.utcnow().isoformat())

    # Relationships
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")
