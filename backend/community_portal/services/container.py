"""Construction of the auth components shared by the gate and the routes."""
from dataclasses import dataclass

from sqlalchemy.orm import sessionmaker

from community_portal.config import Settings
from community_portal.services.credentials import CredentialHasher
from community_portal.services.oauth import GoogleOAuthClient
from community_portal.services.refresh_store import RefreshTokenStore
from community_portal.services.rotation import RotationService
from community_portal.services.sessions import SessionIssuer
from community_portal.services.tokens import TokenCodec


@dataclass
class AuthServices:
    settings: Settings
    hasher: CredentialHasher
    codec: TokenCodec
    store: RefreshTokenStore
    issuer: SessionIssuer
    rotation: RotationService
    oauth: GoogleOAuthClient


def build_auth_services(
    settings: Settings,
    session_factory: sessionmaker,
    *,
    codec: TokenCodec | None = None,
    oauth: GoogleOAuthClient | None = None,
) -> AuthServices:
    """Wire the auth components once per process."""
    hasher = CredentialHasher(rounds=settings.bcrypt_rounds)
    codec = codec or TokenCodec(
        settings.access_token_secret,
        settings.refresh_token_secret,
        algorithm=settings.jwt_algorithm,
        access_ttl=settings.access_token_ttl,
        refresh_ttl=settings.refresh_token_ttl,
    )
    store = RefreshTokenStore(session_factory, clock=codec.clock)
    issuer = SessionIssuer(codec, store, hasher, settings)
    return AuthServices(
        settings=settings,
        hasher=hasher,
        codec=codec,
        store=store,
        issuer=issuer,
        rotation=RotationService(codec, issuer, store),
        oauth=oauth or GoogleOAuthClient(
            settings.google_client_id,
            settings.google_client_secret,
            settings.google_redirect_uri,
        ),
    )
