"""Authentication API endpoints."""
import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from community_portal.api.deps import get_auth, get_current_user, get_db, get_identity
from community_portal.models.user import AuthProvider, User, UserRole, UserStatus
from community_portal.schemas.auth import (
    CompleteProfileRequest,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    SessionResponse,
    SignupRequest,
    UserSummary,
    UserUpdateResponse,
)
from community_portal.services.container import AuthServices
from community_portal.services.oauth import OAuthError
from community_portal.services.rotation import RotationError
from community_portal.services.tokens import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

OAUTH_STATE_COOKIE = "oauthState"
OAUTH_STATE_MAX_AGE = 10 * 60


def _session_response(user: User) -> SessionResponse:
    return SessionResponse(user=UserSummary.model_validate(user))


def _presented_refresh_token(
    request: Request,
    body: RefreshRequest | None,
    auth: AuthServices,
) -> str | None:
    """Cookie first, then the JSON body for non-browser clients."""
    token = request.cookies.get(auth.settings.refresh_cookie_name)
    if not token and body is not None:
        token = body.refresh_token
    return token or None


@router.post("/signup", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def signup(
    data: SignupRequest,
    response: Response,
    db: Session = Depends(get_db),
    auth: AuthServices = Depends(get_auth),
):
    """Register a resident account and start a session."""
    email = str(data.email).lower()
    existing = db.query(User).filter((User.email == email) | (User.phone == data.phone)).first()
    if existing:
        detail = "Email already registered" if existing.email == email else "Phone number already registered"
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    user = User(
        name=data.name,
        email=email,
        phone=data.phone,
        password_hash=auth.hasher.hash(data.password),
        provider=AuthProvider.CREDENTIALS.value,
        role=UserRole.GUEST.value,
        status=UserStatus.PENDING.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id}")

    session = auth.issuer.issue(user.id, user.role)
    auth.issuer.set_session_cookies(response, session)
    return _session_response(user)


@router.post("/login", response_model=SessionResponse)
def login(
    credentials: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    auth: AuthServices = Depends(get_auth),
):
    """Check a password and start a session."""
    user = db.query(User).filter(User.email == str(credentials.email).lower()).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if not user.password_hash:
        # Federated-only account
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please sign in with your social account",
        )

    if not auth.hasher.verify(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    session = auth.issuer.issue(user.id, user.role)
    auth.issuer.set_session_cookies(response, session)
    return _session_response(user)


@router.post("/refresh", response_model=SessionResponse)
def refresh_session(
    request: Request,
    response: Response,
    body: RefreshRequest | None = None,
    db: Session = Depends(get_db),
    auth: AuthServices = Depends(get_auth),
):
    """Exchange a refresh token for a new pair; the presented token is consumed."""
    raw_token = _presented_refresh_token(request, body, auth)
    try:
        user, session = auth.rotation.rotate(db, raw_token)
    except RotationError as exc:
        failure = JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
        auth.issuer.clear_session_cookies(failure)
        return failure

    auth.issuer.set_session_cookies(response, session)
    return _session_response(user)


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    body: RefreshRequest | None = None,
    identity: Identity = Depends(get_identity),
    auth: AuthServices = Depends(get_auth),
):
    """End this session only; other devices keep their sessions."""
    raw_token = _presented_refresh_token(request, body, auth)
    claims = auth.codec.verify_refresh(raw_token)
    if claims is not None and claims.subject_id == identity.subject_id:
        record = auth.issuer.match_refresh_token(raw_token, claims.subject_id)
        if record is not None:
            auth.store.revoke(record.id)
            logger.info(f"User {identity.subject_id} logged out refresh token {record.id}")

    auth.issuer.clear_session_cookies(response)
    return MessageResponse(message="Logged out")


@router.post("/logout/all", response_model=MessageResponse)
def logout_everywhere(
    response: Response,
    identity: Identity = Depends(get_identity),
    auth: AuthServices = Depends(get_auth),
):
    """Revoke all refresh tokens for the current user."""
    auth.store.revoke_all(identity.subject_id)
    auth.issuer.clear_session_cookies(response)
    return MessageResponse(message="Logged out from all devices")


@router.get("/me", response_model=UserSummary)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/complete-profile", response_model=UserUpdateResponse)
def complete_profile(
    data: CompleteProfileRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add the phone number a federated sign-up could not provide."""
    taken = db.query(User).filter(User.phone == data.phone, User.id != current_user.id).first()
    if taken:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Phone number already in use")

    current_user.phone = data.phone
    db.commit()
    db.refresh(current_user)
    return UserUpdateResponse(message="Profile updated", user=UserSummary.model_validate(current_user))


@router.get("/google")
def google_login(auth: AuthServices = Depends(get_auth)):
    """Redirect to Google's consent screen."""
    if not auth.oauth.configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google sign-in is not configured",
        )

    state = secrets.token_urlsafe(24)
    response = RedirectResponse(auth.oauth.authorization_url(state))
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        max_age=OAUTH_STATE_MAX_AGE,
        path="/api/auth/google",
        secure=auth.settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return response


def _login_redirect(auth: AuthServices, error: str) -> RedirectResponse:
    return RedirectResponse(f"{auth.settings.login_path}?error={error}")


@router.get("/google/callback")
def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    db: Session = Depends(get_db),
    auth: AuthServices = Depends(get_auth),
):
    """Finish Google sign-in: find or create the account and start a session."""
    if not code:
        return _login_redirect(auth, "no_code")

    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        return _login_redirect(auth, "invalid_state")

    try:
        profile = auth.oauth.fetch_profile(code)
    except OAuthError as exc:
        logger.warning(f"Google sign-in failed: {exc}")
        return _login_redirect(auth, "auth_failed")

    user = db.query(User).filter(User.email == profile.email).first()
    if user is None:
        user = User(
            name=profile.name,
            email=profile.email,
            image=profile.picture,
            provider=AuthProvider.GOOGLE.value,
            role=UserRole.GUEST.value,
            status=UserStatus.PENDING.value,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Registered user {user.id} via Google")

    session = auth.issuer.issue(user.id, user.role)
    response = RedirectResponse("/complete-profile" if not user.phone else "/dashboard")
    auth.issuer.set_session_cookies(response, session)
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/api/auth/google")
    return response
