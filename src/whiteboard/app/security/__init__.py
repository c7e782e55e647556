"""Caller authentication (token verification and the auth guard)."""

from .auth_guard import (
    AuthGuardMiddleware,
    get_auth_identity,
    get_optional_identity,
)
from .token_verify import (
    AuthIdentity,
    JWKSKeyProvider,
    StaticKeyProvider,
    TokenVerificationError,
    TokenVerifier,
    create_token_verifier,
    extract_bearer_token,
)

__all__ = [
    'AuthGuardMiddleware',
    'AuthIdentity',
    'JWKSKeyProvider',
    'StaticKeyProvider',
    'TokenVerificationError',
    'TokenVerifier',
    'create_token_verifier',
    'extract_bearer_token',
    'get_auth_identity',
    'get_optional_identity',
]
