"""In-memory store implementations for local development and tests.

Used when ENVIRONMENT=local. They honour the same contracts as the
Supabase repositories, including the (owner_id, name) uniqueness
constraint, but keep everything in dicts (no persistence across restarts).

Returned objects are copies, so callers cannot mutate stored state without
going through the repository.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any

from .boards.model import Board, User, Visibility
from .boards.sharing import ShareEntry
from .errors import ConflictError, board_not_found


def _name_taken(name: str, owner_id: str) -> ConflictError:
    return ConflictError(
        f'Owner {owner_id!r} already has a board named {name!r}.',
    )


class InMemoryBoardRepository:
    _UPDATABLE = frozenset({'name', 'data', 'blob_key', 'visibility'})

    def __init__(self) -> None:
        self._boards: dict[str, Board] = {}

    def _collides(
        self, name: str, owner_id: str, exclude_board_id: str | None,
    ) -> bool:
        return any(
            b.owner_id == owner_id and b.name == name and b.id != exclude_board_id
            for b in self._boards.values()
        )

    async def get(self, board_id: str) -> Board | None:
        board = self._boards.get(board_id)
        return copy.deepcopy(board) if board else None

    async def create(self, board: Board) -> Board:
        if board.id in self._boards:
            raise ConflictError(f'Board {board.id!r} already exists.', code='board_exists')
        if self._collides(board.name, board.owner_id, None):
            raise _name_taken(board.name, board.owner_id)
        self._boards[board.id] = copy.deepcopy(board)
        return copy.deepcopy(board)

    async def update(self, board_id: str, **fields: Any) -> Board | None:
        board = self._boards.get(board_id)
        if board is None:
            return None
        unknown = set(fields) - self._UPDATABLE
        if unknown:
            raise ValueError(f'Cannot update board fields: {sorted(unknown)}')
        name = fields.get('name')
        if name is not None and self._collides(name, board.owner_id, board_id):
            raise _name_taken(name, board.owner_id)
        for key, value in fields.items():
            if key == 'visibility':
                value = Visibility(value)
            setattr(board, key, value)
        board.updated_at = datetime.now(timezone.utc)
        return copy.deepcopy(board)

    async def delete(self, board_id: str) -> bool:
        return self._boards.pop(board_id, None) is not None

    async def name_exists(
        self, name: str, owner_id: str, exclude_board_id: str | None = None,
    ) -> bool:
        return self._collides(name, owner_id, exclude_board_id)

    async def list_for_owner(self, owner_id: str) -> list[Board]:
        return self._sorted(b for b in self._boards.values() if b.owner_id == owner_id)

    async def list_public(self) -> list[Board]:
        return self._sorted(b for b in self._boards.values() if b.is_public)

    async def list_shared_with(self, user_id: str) -> list[Board]:
        return self._sorted(
            b for b in self._boards.values() if user_id in b.shared_with
        )

    async def upsert_share(self, board_id: str, entry: ShareEntry) -> ShareEntry:
        board = self._boards.get(board_id)
        if board is None:
            raise board_not_found(board_id)
        return board.shared_with.upsert(entry)

    async def remove_share(self, board_id: str, user_id: str) -> bool:
        board = self._boards.get(board_id)
        if board is None:
            return False
        return board.shared_with.remove(user_id) is not None

    @staticmethod
    def _sorted(boards) -> list[Board]:
        return [copy.deepcopy(b) for b in sorted(boards, key=lambda b: b.created_at)]


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    async def get(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def get_by_email(self, email: str) -> User | None:
        normalized = email.strip().lower()
        for user in self._users.values():
            if user.email == normalized:
                return copy.deepcopy(user)
        return None

    async def create(self, user: User) -> User:
        if await self.get_by_email(user.email) is not None:
            raise ConflictError(
                f'Email {user.email!r} is already registered.', code='email_taken',
            )
        self._users[user.id] = copy.deepcopy(user)
        return copy.deepcopy(user)

    async def update_recents(self, user_id: str, recents: list[str]) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        user.recents = list(recents)
        return copy.deepcopy(user)


class InMemoryBlobStore:
    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.deleted: list[str] = []

    async def put(self, key: str, content: bytes) -> None:
        self.blobs[key] = content

    async def delete(self, key: str) -> None:
        self.blobs.pop(key, None)
        self.deleted.append(key)
