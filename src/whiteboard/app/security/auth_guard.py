"""Auth guard middleware and identity dependencies.

Credential transports, in precedence order:
  - ``Authorization: Bearer <access_token>``
  - the session cookie (name configurable, ``token`` by default) holding
    the same kind of access token.

The middleware sets ``request.state.auth_identity`` (or ``None``). With
``require_auth=False`` anonymous requests pass through and routes decide:
``get_auth_identity`` rejects them with 401, ``get_optional_identity``
lets public boards be read anonymously. Presenting an invalid credential
is always a 401.
"""

from __future__ import annotations

from fastapi import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .token_verify import (
    AuthIdentity,
    TokenVerificationError,
    TokenVerifier,
    extract_bearer_token,
)

DEFAULT_EXEMPT_PREFIXES: tuple[str, ...] = (
    '/health',
    '/metrics',
    '/docs',
    '/openapi.json',
)

_UNAUTHORIZED_HEADERS = {'WWW-Authenticate': 'Bearer'}


def _unauthorized(code: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={'error': 'unauthorized', 'code': code, 'detail': detail},
        headers=_UNAUTHORIZED_HEADERS,
    )


class AuthGuardMiddleware(BaseHTTPMiddleware):
    """Resolve the caller's identity from a bearer token or session cookie.

    Args:
        app: The ASGI application.
        token_verifier: Verifies presented tokens.
        exempt_prefixes: Paths that skip credential handling entirely.
        require_auth: Reject requests without credentials when True.
        session_cookie_name: Cookie carrying the access token.
    """

    def __init__(
        self,
        app,
        token_verifier: TokenVerifier,
        exempt_prefixes: tuple[str, ...] = DEFAULT_EXEMPT_PREFIXES,
        require_auth: bool = True,
        session_cookie_name: str = 'token',
    ) -> None:
        super().__init__(app)
        self._verifier = token_verifier
        self._exempt_prefixes = exempt_prefixes
        self._require_auth = require_auth
        self._session_cookie_name = session_cookie_name

    def _is_exempt(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self._exempt_prefixes)

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.auth_identity = None

        if request.method == 'OPTIONS' or self._is_exempt(request.url.path):
            return await call_next(request)

        token = extract_bearer_token(request) or request.cookies.get(
            self._session_cookie_name,
        )
        if token:
            try:
                request.state.auth_identity = self._verifier.verify(token)
            except TokenVerificationError as exc:
                return _unauthorized(exc.code, exc.detail or 'Invalid credentials')
            return await call_next(request)

        if self._require_auth:
            return _unauthorized('no_credentials', 'Authentication required')

        return await call_next(request)


def get_optional_identity(request: Request) -> AuthIdentity | None:
    return getattr(request.state, 'auth_identity', None)


def get_auth_identity(request: Request) -> AuthIdentity:
    """FastAPI dependency returning the authenticated identity or raising 401."""
    identity = get_optional_identity(request)
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail={
                'error': 'unauthorized',
                'code': 'no_credentials',
                'detail': 'Authentication required',
            },
            headers=_UNAUTHORIZED_HEADERS,
        )
    return identity
