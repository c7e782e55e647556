"""Supabase-backed UserRepository.

Emails are stored lower-cased (unique index on email), so lookups use an
exact match on the normalised value rather than ``ilike``, which would
treat ``_`` and ``%`` in addresses as wildcards.
"""

from __future__ import annotations

from whiteboard.app.boards.model import User

from .errors import translate_store_errors
from .supabase_client import SupabaseClient


class SupabaseUserRepository:
    TABLE = "users"
    COLUMNS = "id,name,email,avatar,recents"

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def get(self, user_id: str) -> User | None:
        with translate_store_errors("get user"):
            rows = await self._client.select(
                self.TABLE,
                filters={"id": ("eq", user_id)},
                columns=self.COLUMNS,
                limit=1,
            )
        return User.from_row(rows[0]) if rows else None

    async def get_by_email(self, email: str) -> User | None:
        with translate_store_errors("get user by email"):
            rows = await self._client.select(
                self.TABLE,
                filters={"email": ("eq", email.strip().lower())},
                columns=self.COLUMNS,
                limit=1,
            )
        return User.from_row(rows[0]) if rows else None

    async def create(self, user: User) -> User:
        with translate_store_errors("create user", conflict_code="email_taken"):
            rows = await self._client.insert(self.TABLE, user.to_dict())
        return User.from_row(rows[0])

    async def update_recents(self, user_id: str, recents: list[str]) -> User | None:
        # Whole-list write: concurrent visits are last-write-wins.
        with translate_store_errors("update recents"):
            rows = await self._client.update(
                self.TABLE,
                filters={"id": ("eq", user_id)},
                data={"recents": list(recents)},
            )
        return User.from_row(rows[0]) if rows else None
