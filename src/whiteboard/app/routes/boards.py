"""Board endpoints.

Response contracts:
  GET    /api/boards                 → 200 { boards: [...] }     (owned)
  GET    /api/boards/public          → 200 { boards: [...] }     (no auth)
  GET    /api/boards/shared          → 200 { boards: [...] }     (shared with me)
  GET    /api/boards/recents         → 200 { recents: [...] }    (board objects)
  POST   /api/boards                 → 201 { board }
  GET    /api/boards/{id}            → 200 { board, capabilities }
  PUT    /api/boards/{id}            → 200 { board }
  DELETE /api/boards/{id}            → 200 { success: true }
  POST   /api/boards/{id}/share      → 200 { board_id, user_id, email, permission }
  POST   /api/boards/{id}/unshare    → 200 { success: true }
  POST   /api/boards/{id}/recent     → 200 { success: true, recents }

Domain failures are raised as ``BoardServiceError`` subclasses and rendered
by the application's error handler as ``{ error, detail }``.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from whiteboard.app.boards.model import Board
from whiteboard.app.boards.service import BoardService
from whiteboard.app.security.auth_guard import get_optional_identity
from whiteboard.app.security.token_verify import AuthIdentity

from .me import provisioned_identity


# ── Request schemas ───────────────────────────────────────────────────


class CreateBoardRequest(BaseModel):
    name: str | None = Field(default=None, max_length=200)


class UpdateBoardRequest(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    data: str | None = None
    blob_key: str | None = Field(default=None, min_length=1, max_length=1024)
    visibility: str | None = None


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if '@' not in v or '.' not in v.split('@')[-1]:
        raise ValueError('Invalid email address')
    return v


class ShareBoardRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    # Validated by the domain so an unknown value is a 400, not a 422.
    permission: str = Field(default='view')

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class UnshareBoardRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


def _board_list(boards: list[Board]) -> dict[str, Any]:
    return {'boards': [b.to_dict() for b in boards]}


# ── Route factory ─────────────────────────────────────────────────────


def create_board_router(service: BoardService) -> APIRouter:
    """Create the board router bound to a ``BoardService``."""
    router = APIRouter(prefix='/api/boards', tags=['boards'])
    current_identity = provisioned_identity(service)

    @router.get('')
    async def list_my_boards(
        identity: AuthIdentity = Depends(current_identity),
    ):
        return _board_list(await service.list_owned(identity.user_id))

    @router.get('/public')
    async def list_public_boards():
        return _board_list(await service.list_public())

    @router.get('/shared')
    async def list_shared_boards(
        identity: AuthIdentity = Depends(current_identity),
    ):
        return _board_list(await service.list_shared_with(identity.user_id))

    @router.get('/recents')
    async def list_recents(
        identity: AuthIdentity = Depends(current_identity),
    ):
        boards = await service.list_recents(identity.user_id)
        return {'recents': [b.to_dict() for b in boards]}

    @router.post('', status_code=201)
    async def create_board(
        body: CreateBoardRequest,
        identity: AuthIdentity = Depends(current_identity),
    ):
        board = await service.create_board(identity.user_id, body.name)
        return board.to_dict()

    @router.get('/{board_id}')
    async def get_board(
        board_id: str,
        identity: AuthIdentity | None = Depends(get_optional_identity),
    ):
        """Read a board. Public boards are readable without credentials."""
        actor_id = identity.user_id if identity else None
        board, caps = await service.get_board(board_id, actor_id)
        return {
            **board.to_dict(),
            'capabilities': sorted(c.value for c in caps),
        }

    @router.put('/{board_id}')
    async def update_board(
        board_id: str,
        body: UpdateBoardRequest,
        identity: AuthIdentity = Depends(current_identity),
    ):
        board = await service.update_board(
            board_id,
            identity.user_id,
            name=body.name,
            data=body.data,
            blob_key=body.blob_key,
            visibility=body.visibility,
        )
        return board.to_dict()

    @router.delete('/{board_id}')
    async def delete_board(
        board_id: str,
        identity: AuthIdentity = Depends(current_identity),
    ):
        await service.delete_board(board_id, identity.user_id)
        return {'success': True}

    @router.post('/{board_id}/share')
    async def share_board(
        board_id: str,
        body: ShareBoardRequest,
        identity: AuthIdentity = Depends(current_identity),
    ):
        entry = await service.share_board(
            board_id, identity.user_id, body.email, body.permission,
        )
        return {
            'board_id': board_id,
            'user_id': entry.user_id,
            'email': body.email,
            'permission': entry.permission.value,
        }

    @router.post('/{board_id}/unshare')
    async def unshare_board(
        board_id: str,
        body: UnshareBoardRequest,
        identity: AuthIdentity = Depends(current_identity),
    ):
        await service.unshare_board(board_id, identity.user_id, body.email)
        return {'success': True}

    @router.post('/{board_id}/recent')
    async def record_recent_visit(
        board_id: str,
        identity: AuthIdentity = Depends(current_identity),
    ):
        recents = await service.record_visit(identity.user_id, board_id)
        return {'success': True, 'recents': recents}

    return router
