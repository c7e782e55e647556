"""Board and user domain objects.

``Board`` mirrors the ``app.boards`` row plus its share list from
``app.board_shares``; ``User`` mirrors ``app.users`` (authentication
material lives with the auth provider and never reaches this module).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from whiteboard.app.errors import BadRequestError

from .sharing import ShareEntry, ShareTable

DEFAULT_BOARD_NAME = 'Untitled'


class Visibility(str, Enum):
    PRIVATE = 'private'
    PUBLIC = 'public'


def parse_visibility(value: str) -> Visibility:
    try:
        return Visibility(value)
    except ValueError:
        raise BadRequestError(
            f'visibility must be one of private, public; got {value!r}',
            code='invalid_visibility',
        ) from None


def new_board_id() -> str:
    """Board ids are minted by the service, never by the store."""
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    return _utcnow()


@dataclass
class Board:
    """A whiteboard owned by exactly one user.

    Attributes:
        id: Opaque id supplied at creation.
        name: Unique among the owner's boards.
        owner_id: Immutable after creation.
        data: Editor document or external blob reference.
        blob_key: Storage key of the external blob, released on delete.
        visibility: ``private`` or ``public``.
        shared_with: Per-user share entries (never contains the owner).
    """

    id: str
    name: str
    owner_id: str
    data: str = ''
    blob_key: str | None = None
    visibility: Visibility = Visibility.PRIVATE
    shared_with: ShareTable = field(default_factory=ShareTable)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_public(self) -> bool:
        return self.visibility is Visibility.PUBLIC

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'data': self.data,
            'owner_id': self.owner_id,
            'blob_key': self.blob_key,
            'visibility': self.visibility.value,
            'shared_with': self.shared_with.to_list(),
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    def to_row(self) -> dict[str, Any]:
        """Columns of ``app.boards`` (share entries live in their own table)."""
        row = self.to_dict()
        row.pop('shared_with')
        return row

    @classmethod
    def from_row(
        cls,
        row: dict[str, Any],
        shares: list[dict[str, Any]] | None = None,
    ) -> Board:
        return cls(
            id=str(row['id']),
            name=row.get('name') or DEFAULT_BOARD_NAME,
            owner_id=str(row['owner_id']),
            data=row.get('data') or '',
            blob_key=row.get('blob_key'),
            visibility=Visibility(row.get('visibility') or 'private'),
            shared_with=ShareTable(
                ShareEntry.from_dict(s) for s in (shares or [])
            ),
            created_at=_parse_ts(row.get('created_at')),
            updated_at=_parse_ts(row.get('updated_at')),
        )


@dataclass
class User:
    """A registered user. ``email`` is stored lower-cased."""

    id: str
    name: str
    email: str
    avatar: str | None = None
    recents: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.email = self.email.strip().lower()

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'avatar': self.avatar,
            'recents': list(self.recents),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> User:
        return cls(
            id=str(row['id']),
            name=row.get('name') or '',
            email=row.get('email') or '',
            avatar=row.get('avatar'),
            recents=[str(r) for r in (row.get('recents') or [])],
        )
