"""Tests for token verification and the auth guard middleware.

Validates:
  - TokenVerifier accepts valid HS256 tokens and maps failures to codes
  - Bearer header takes precedence over the session cookie
  - require_auth toggles anonymous pass-through
  - Exempt paths skip credential handling
"""

from __future__ import annotations

import time

import jwt
import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from whiteboard.app.security.auth_guard import (
    AuthGuardMiddleware,
    get_auth_identity,
    get_optional_identity,
)
from whiteboard.app.security.token_verify import (
    AuthIdentity,
    StaticKeyProvider,
    TokenVerificationError,
    TokenVerifier,
    create_token_verifier,
)

# ── Test constants ────────────────────────────────────────────────────

TEST_SECRET = 'test-auth-guard-secret-0123456789abcdef'
TEST_AUDIENCE = 'authenticated'


def _make_token(secret: str = TEST_SECRET, **overrides) -> str:
    payload = {
        'sub': 'user-uuid-100',
        'email': 'Guard@Example.com',
        'aud': TEST_AUDIENCE,
        'exp': int(time.time()) + 3600,
        'iat': int(time.time()),
    }
    payload.update(overrides)
    return jwt.encode(payload, secret, algorithm='HS256')


def _create_verifier() -> TokenVerifier:
    return TokenVerifier(
        key_provider=StaticKeyProvider(TEST_SECRET),
        audience=TEST_AUDIENCE,
        algorithms=['HS256'],
    )


def _create_test_app(require_auth: bool = True) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        AuthGuardMiddleware,
        token_verifier=_create_verifier(),
        require_auth=require_auth,
    )

    @app.get('/health')
    async def health():
        return {'status': 'ok'}

    @app.get('/whoami')
    async def whoami(identity: AuthIdentity = Depends(get_auth_identity)):
        return {'user_id': identity.user_id, 'email': identity.email}

    @app.get('/maybe')
    async def maybe(identity: AuthIdentity | None = Depends(get_optional_identity)):
        return {'user_id': identity.user_id if identity else None}

    return app


async def _get(app: FastAPI, path: str, **kwargs):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as client:
        return await client.get(path, **kwargs)


# ── TokenVerifier ─────────────────────────────────────────────────────


class TestTokenVerifier:
    def test_valid_token(self):
        identity = _create_verifier().verify(_make_token())
        assert identity.user_id == 'user-uuid-100'
        assert identity.email == 'guard@example.com'
        assert identity.raw_claims['aud'] == TEST_AUDIENCE

    def test_id_claim_fallback(self):
        token = jwt.encode(
            {'id': 'legacy-7', 'aud': TEST_AUDIENCE, 'exp': int(time.time()) + 60},
            TEST_SECRET,
            algorithm='HS256',
        )
        assert _create_verifier().verify(token).user_id == 'legacy-7'

    @pytest.mark.parametrize(
        ('token', 'code'),
        [
            ('', 'empty_token'),
            ('garbage', 'invalid_token'),
        ],
    )
    def test_malformed(self, token, code):
        with pytest.raises(TokenVerificationError) as exc_info:
            _create_verifier().verify(token)
        assert exc_info.value.code == code

    def test_expired(self):
        with pytest.raises(TokenVerificationError) as exc_info:
            _create_verifier().verify(_make_token(exp=int(time.time()) - 10))
        assert exc_info.value.code == 'token_expired'

    def test_wrong_audience(self):
        with pytest.raises(TokenVerificationError) as exc_info:
            _create_verifier().verify(_make_token(aud='someone-else'))
        assert exc_info.value.code == 'invalid_audience'

    def test_wrong_secret(self):
        with pytest.raises(TokenVerificationError) as exc_info:
            _create_verifier().verify(_make_token(secret='another-secret-0123456789abcdefghij'))
        assert exc_info.value.code == 'invalid_token'

    def test_missing_exp(self):
        token = jwt.encode(
            {'sub': 'u1', 'aud': TEST_AUDIENCE}, TEST_SECRET, algorithm='HS256',
        )
        with pytest.raises(TokenVerificationError) as exc_info:
            _create_verifier().verify(token)
        assert exc_info.value.code == 'invalid_token'

    def test_missing_subject(self):
        token = jwt.encode(
            {'aud': TEST_AUDIENCE, 'exp': int(time.time()) + 60},
            TEST_SECRET,
            algorithm='HS256',
        )
        with pytest.raises(TokenVerificationError) as exc_info:
            _create_verifier().verify(token)
        assert exc_info.value.code == 'missing_sub_claim'


def test_create_token_verifier_requires_a_key():
    with pytest.raises(ValueError):
        create_token_verifier()
    assert isinstance(create_token_verifier(jwt_secret='s'), TokenVerifier)


# ── Middleware ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_bearer_token_sets_identity():
    resp = await _get(
        _create_test_app(), '/whoami',
        headers={'Authorization': f'Bearer {_make_token()}'},
    )
    assert resp.status_code == 200
    assert resp.json() == {'user_id': 'user-uuid-100', 'email': 'guard@example.com'}


@pytest.mark.asyncio
async def test_session_cookie_sets_identity():
    resp = await _get(
        _create_test_app(), '/whoami',
        headers={'Cookie': f'token={_make_token(sub="cookie-user")}'},
    )
    assert resp.status_code == 200
    assert resp.json()['user_id'] == 'cookie-user'


@pytest.mark.asyncio
async def test_bearer_wins_over_cookie():
    resp = await _get(
        _create_test_app(), '/whoami',
        headers={
            'Authorization': f'Bearer {_make_token(sub="bearer-user")}',
            'Cookie': f'token={_make_token(sub="cookie-user")}',
        },
    )
    assert resp.json()['user_id'] == 'bearer-user'


@pytest.mark.asyncio
async def test_missing_credentials_rejected_when_required():
    resp = await _get(_create_test_app(require_auth=True), '/whoami')
    assert resp.status_code == 401
    assert resp.json()['code'] == 'no_credentials'
    assert resp.headers['www-authenticate'] == 'Bearer'


@pytest.mark.asyncio
async def test_exempt_path_skips_auth():
    resp = await _get(_create_test_app(require_auth=True), '/health')
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_optional_mode_lets_anonymous_through():
    app = _create_test_app(require_auth=False)
    resp = await _get(app, '/maybe')
    assert resp.status_code == 200
    assert resp.json() == {'user_id': None}

    resp = await _get(app, '/whoami')
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_rejected_even_when_optional():
    resp = await _get(
        _create_test_app(require_auth=False), '/maybe',
        headers={'Authorization': 'Bearer garbage'},
    )
    assert resp.status_code == 401
    assert resp.json()['code'] == 'invalid_token'
