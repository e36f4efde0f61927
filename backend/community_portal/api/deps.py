"""Shared FastAPI dependencies."""
from collections.abc import Callable, Generator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from community_portal.models.user import User, UserRole
from community_portal.services.container import AuthServices
from community_portal.services.tokens import Identity


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_auth(request: Request) -> AuthServices:
    return request.app.state.auth


def get_identity(request: Request) -> Identity:
    """Identity injected by the authorization gate."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def get_current_user(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, identity.subject_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def require_roles(*roles: UserRole) -> Callable[..., Identity]:
    """Allow the request only if the caller's role is one of ``roles``."""
    allowed = {role.value for role in roles}

    def dependency(identity: Identity = Depends(get_identity)) -> Identity:
        if identity.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return identity

    return dependency
