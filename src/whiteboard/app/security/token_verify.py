"""Access-token verification.

Tokens are issued elsewhere (login flows are not part of this service);
here we only verify them and extract the acting user's identity.

Key resolution is pluggable:
  - ``StaticKeyProvider``: shared HS256 secret (local dev, single-issuer
    deployments).
  - ``JWKSKeyProvider``: RS256 public keys fetched from a JWKS endpoint.

The user id is read from the ``sub`` claim, falling back to ``id`` for
tokens minted by the legacy login service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import jwt
from jwt import PyJWKClient, PyJWKClientError
from starlette.requests import Request

DEFAULT_AUDIENCE = 'authenticated'
JWKS_CACHE_TTL_SECONDS = 300
BEARER_PREFIX = 'Bearer '


@dataclass(frozen=True, slots=True)
class AuthIdentity:
    """Verified identity of the caller.

    Attributes:
        user_id: Opaque user id (``sub`` or ``id`` claim).
        email: Lower-cased email, empty when the token carries none.
        raw_claims: Full decoded payload.
    """

    user_id: str
    email: str = ''
    raw_claims: dict[str, Any] = field(default_factory=dict)


class TokenVerificationError(Exception):
    def __init__(self, code: str, detail: str = '') -> None:
        self.code = code
        self.detail = detail
        super().__init__(f'{code}: {detail}' if detail else code)


class KeyProvider(Protocol):
    def get_signing_key(self, token: str) -> Any: ...


class JWKSKeyProvider:
    """Resolves RS256 signing keys from a JWKS endpoint (cached)."""

    def __init__(
        self,
        jwks_url: str,
        cache_ttl: int = JWKS_CACHE_TTL_SECONDS,
    ) -> None:
        self._client = PyJWKClient(
            jwks_url,
            cache_jwk_set=True,
            lifespan=cache_ttl,
        )

    def get_signing_key(self, token: str) -> Any:
        try:
            return self._client.get_signing_key_from_jwt(token).key
        except PyJWKClientError as exc:
            raise TokenVerificationError('jwks_fetch_error', str(exc)) from exc


class StaticKeyProvider:
    def __init__(self, secret: str) -> None:
        self._secret = secret

    def get_signing_key(self, token: str) -> str:
        return self._secret


class TokenVerifier:
    """Verifies JWTs and extracts the caller's identity.

    Args:
        key_provider: Resolves the signing key for a token.
        audience: Expected ``aud`` claim; ``None`` disables the check.
        algorithms: Accepted JWT algorithms.
    """

    def __init__(
        self,
        key_provider: KeyProvider,
        audience: str | None = DEFAULT_AUDIENCE,
        algorithms: list[str] | None = None,
    ) -> None:
        self._key_provider = key_provider
        self._audience = audience
        self._algorithms = algorithms or ['HS256']

    def verify(self, token: str) -> AuthIdentity:
        """Verify ``token`` and return the identity.

        Raises:
            TokenVerificationError: On any verification failure.
        """
        if not token or not token.strip():
            raise TokenVerificationError('empty_token')

        key = self._key_provider.get_signing_key(token)

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=self._algorithms,
                audience=self._audience,
                options={
                    'require': ['exp'],
                    'verify_aud': self._audience is not None,
                },
            )
        except jwt.ExpiredSignatureError:
            raise TokenVerificationError('token_expired') from None
        except jwt.InvalidAudienceError:
            raise TokenVerificationError(
                'invalid_audience', f'expected {self._audience}',
            ) from None
        except jwt.InvalidTokenError as exc:
            raise TokenVerificationError('invalid_token', str(exc)) from None

        user_id = claims.get('sub') or claims.get('id')
        if not user_id:
            raise TokenVerificationError('missing_sub_claim')

        email = claims.get('email') or ''
        return AuthIdentity(
            user_id=str(user_id),
            email=email.lower(),
            raw_claims=claims,
        )


def extract_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get('authorization', '')
    if auth_header.startswith(BEARER_PREFIX):
        return auth_header[len(BEARER_PREFIX):].strip()
    return None


def create_token_verifier(
    jwt_secret: str | None = None,
    jwks_url: str | None = None,
    audience: str | None = DEFAULT_AUDIENCE,
) -> TokenVerifier:
    """Build a verifier, preferring JWKS (RS256) over a static secret.

    Raises:
        ValueError: If neither a JWKS URL nor a secret is provided.
    """
    if jwks_url:
        return TokenVerifier(
            key_provider=JWKSKeyProvider(jwks_url),
            audience=audience,
            algorithms=['RS256'],
        )
    if jwt_secret:
        return TokenVerifier(
            key_provider=StaticKeyProvider(jwt_secret),
            audience=audience,
            algorithms=['HS256'],
        )
    raise ValueError('Either jwks_url (RS256) or jwt_secret (HS256) is required')
