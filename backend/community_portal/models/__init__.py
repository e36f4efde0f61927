"""SQLAlchemy models package."""
from community_portal.models.user import AuthProvider, User, UserRole, UserStatus
from community_portal.models.auth import RefreshToken

__all__ = [
    "AuthProvider",
    "User",
    "UserRole",
    "UserStatus",
    "RefreshToken",
]
