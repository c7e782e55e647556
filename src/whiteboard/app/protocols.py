"""Store and collaborator protocols for dependency injection.

Concrete implementations: ``whiteboard.app.inmemory`` (local dev, tests)
and ``whiteboard.app.db`` (Supabase/PostgREST). The app factory accepts any
object matching these protocols.

Store contracts the core relies on:
  - ``BoardRepository.create``/``update`` raise ``ConflictError`` when the
    (owner_id, name) uniqueness constraint fires.
  - ``upsert_share``/``remove_share`` are atomic per (board_id, user_id);
    share lists are never persisted by rewriting the whole list.
  - Any other store failure surfaces as ``UnavailableError``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .boards.model import Board, User
from .boards.sharing import ShareEntry


@runtime_checkable
class BoardRepository(Protocol):
    async def get(self, board_id: str) -> Board | None: ...
    async def create(self, board: Board) -> Board: ...
    async def update(self, board_id: str, **fields: Any) -> Board | None: ...
    async def delete(self, board_id: str) -> bool: ...
    async def name_exists(
        self, name: str, owner_id: str, exclude_board_id: str | None = None,
    ) -> bool: ...
    async def list_for_owner(self, owner_id: str) -> list[Board]: ...
    async def list_public(self) -> list[Board]: ...
    async def list_shared_with(self, user_id: str) -> list[Board]: ...
    async def upsert_share(self, board_id: str, entry: ShareEntry) -> ShareEntry: ...
    async def remove_share(self, board_id: str, user_id: str) -> bool: ...


@runtime_checkable
class UserRepository(Protocol):
    async def get(self, user_id: str) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def create(self, user: User) -> User: ...
    async def update_recents(self, user_id: str, recents: list[str]) -> User | None: ...


@runtime_checkable
class BlobStore(Protocol):
    """External blob storage holding large board payloads."""

    async def delete(self, key: str) -> None: ...
