"""Supabase-backed BoardRepository.

Boards live in ``boards``; share entries in ``board_shares``. Both tables
are in the configured schema.

Store-level guarantees the service depends on:
  - ``boards`` has a unique index on (owner_id, name). PostgREST reports a
    violation as 409, surfaced here as ``ConflictError`` so the naming
    retry loop can renumber.
  - ``board_shares`` has a unique index on (board_id, user_id). Sharing is
    an upsert on that key and unsharing a keyed delete, so concurrent share
    mutations never rewrite each other's entries.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from whiteboard.app.boards.model import Board
from whiteboard.app.boards.sharing import ShareEntry

from .errors import translate_store_errors
from .supabase_client import SupabaseClient


class SupabaseBoardRepository:
    """BoardRepository backed by PostgREST."""

    TABLE = "boards"
    SHARES_TABLE = "board_shares"
    _UPDATABLE = frozenset({"name", "data", "blob_key", "visibility"})

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def _shares_for(self, board_ids: list[str]) -> dict[str, list[dict[str, Any]]]:
        if not board_ids:
            return {}
        rows = await self._client.select(
            self.SHARES_TABLE,
            filters={"board_id": ("in", board_ids)},
            columns="board_id,user_id,permission",
            order="created_at.asc",
        )
        grouped: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for row in rows:
            grouped[str(row["board_id"])].append(row)
        return grouped

    async def _hydrate(self, rows: list[dict[str, Any]]) -> list[Board]:
        shares = await self._shares_for([str(r["id"]) for r in rows])
        return [Board.from_row(r, shares.get(str(r["id"]), [])) for r in rows]

    async def get(self, board_id: str) -> Board | None:
        with translate_store_errors("get board"):
            rows = await self._client.select(
                self.TABLE, filters={"id": ("eq", board_id)}, limit=1,
            )
            if not rows:
                return None
            return (await self._hydrate(rows))[0]

    async def create(self, board: Board) -> Board:
        with translate_store_errors("create board"):
            rows = await self._client.insert(self.TABLE, board.to_row())
        return Board.from_row(rows[0], [])

    async def update(self, board_id: str, **fields: Any) -> Board | None:
        unknown = set(fields) - self._UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update board fields: {sorted(unknown)}")
        data = {**fields, "updated_at": datetime.now(timezone.utc).isoformat()}
        with translate_store_errors("update board"):
            rows = await self._client.update(
                self.TABLE, filters={"id": ("eq", board_id)}, data=data,
            )
            if not rows:
                return None
            return (await self._hydrate(rows))[0]

    async def delete(self, board_id: str) -> bool:
        with translate_store_errors("delete board"):
            await self._client.delete(
                self.SHARES_TABLE, filters={"board_id": ("eq", board_id)},
            )
            rows = await self._client.delete(
                self.TABLE, filters={"id": ("eq", board_id)},
            )
        return len(rows) > 0

    async def name_exists(
        self, name: str, owner_id: str, exclude_board_id: str | None = None,
    ) -> bool:
        filters: dict[str, tuple[str, Any]] = {
            "owner_id": ("eq", owner_id),
            "name": ("eq", name),
        }
        if exclude_board_id is not None:
            filters["id"] = ("neq", exclude_board_id)
        with translate_store_errors("check board name"):
            rows = await self._client.select(
                self.TABLE, filters=filters, columns="id", limit=1,
            )
        return bool(rows)

    async def list_for_owner(self, owner_id: str) -> list[Board]:
        with translate_store_errors("list boards"):
            rows = await self._client.select(
                self.TABLE,
                filters={"owner_id": ("eq", owner_id)},
                order="created_at.asc",
            )
            return await self._hydrate(rows)

    async def list_public(self) -> list[Board]:
        with translate_store_errors("list public boards"):
            rows = await self._client.select(
                self.TABLE,
                filters={"visibility": ("eq", "public")},
                order="created_at.asc",
            )
            return await self._hydrate(rows)

    async def list_shared_with(self, user_id: str) -> list[Board]:
        with translate_store_errors("list shared boards"):
            shares = await self._client.select(
                self.SHARES_TABLE,
                filters={"user_id": ("eq", user_id)},
                columns="board_id",
            )
            if not shares:
                return []
            rows = await self._client.select(
                self.TABLE,
                filters={"id": ("in", [s["board_id"] for s in shares])},
                order="created_at.asc",
            )
            return await self._hydrate(rows)

    async def upsert_share(self, board_id: str, entry: ShareEntry) -> ShareEntry:
        with translate_store_errors("share board", conflict_code="share_conflict"):
            rows = await self._client.insert(
                self.SHARES_TABLE,
                {"board_id": board_id, **entry.to_dict()},
                upsert=True,
                on_conflict="board_id,user_id",
            )
        return ShareEntry.from_dict(rows[0])

    async def remove_share(self, board_id: str, user_id: str) -> bool:
        with translate_store_errors("unshare board"):
            rows = await self._client.delete(
                self.SHARES_TABLE,
                filters={
                    "board_id": ("eq", board_id),
                    "user_id": ("eq", user_id),
                },
            )
        return len(rows) > 0
