"""GET /api/me and the user-provisioning dependency.

Users are created on their first authenticated request: the auth provider
owns registration, this service only keeps the profile row that sharing
(lookup by email) and recents need.

Response format:
    {
        "user_id": "uuid-string",
        "email": "user@example.com",
        "name": "user",
        "recents": ["board-id", ...]
    }
"""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import APIRouter, Depends

from whiteboard.app.boards.service import BoardService
from whiteboard.app.errors import user_not_found
from whiteboard.app.security.auth_guard import get_auth_identity
from whiteboard.app.security.token_verify import AuthIdentity


def provisioned_identity(
    service: BoardService,
) -> Callable[..., Awaitable[AuthIdentity]]:
    """Dependency: the authenticated identity, with its user row ensured."""

    async def _dependency(
        identity: AuthIdentity = Depends(get_auth_identity),
    ) -> AuthIdentity:
        await service.ensure_user(identity.user_id, identity.email)
        return identity

    return _dependency


def create_me_router(service: BoardService) -> APIRouter:
    router = APIRouter(tags=['auth'])

    @router.get('/api/me')
    async def get_me(identity: AuthIdentity = Depends(get_auth_identity)) -> dict:
        user = await service.ensure_user(identity.user_id, identity.email)
        if user is None:
            raise user_not_found(identity.user_id)
        return {
            'user_id': user.id,
            'email': user.email,
            'name': user.name,
            'recents': list(user.recents),
        }

    return router
