"""Per-user board share list.

A board's ``shared_with`` is a ``ShareTable``: at most one ``ShareEntry``
per user id. The owner never appears in it; ownership capabilities are
derived by the permission resolver, not stored.

``share`` and ``unshare`` are owner-only. Delegated sharing (an editor
granting access to someone else) is not supported.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Iterator

from whiteboard.app.errors import BadRequestError, ForbiddenError, NotFoundError

if TYPE_CHECKING:
    from .model import Board


class Permission(str, Enum):
    VIEW = 'view'
    EDIT = 'edit'


def parse_permission(value: str) -> Permission:
    """Validate a wire permission value, raising BadRequestError if unknown."""
    try:
        return Permission(value)
    except ValueError:
        raise BadRequestError(
            f'permission must be one of view, edit; got {value!r}',
            code='invalid_permission',
        ) from None


@dataclass(frozen=True)
class ShareEntry:
    user_id: str
    permission: Permission

    def to_dict(self) -> dict[str, str]:
        return {'user_id': self.user_id, 'permission': self.permission.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShareEntry:
        return cls(
            user_id=str(data['user_id']),
            permission=Permission(data['permission']),
        )


class ShareTable:
    """Share entries keyed by user id, in insertion order."""

    def __init__(self, entries: Iterable[ShareEntry] = ()) -> None:
        self._entries: dict[str, ShareEntry] = {}
        for entry in entries:
            self._entries[entry.user_id] = entry

    def get(self, user_id: str | None) -> ShareEntry | None:
        if user_id is None:
            return None
        return self._entries.get(user_id)

    def upsert(self, entry: ShareEntry) -> ShareEntry:
        # Replacing keeps the entry's original position.
        self._entries[entry.user_id] = entry
        return entry

    def remove(self, user_id: str) -> ShareEntry | None:
        return self._entries.pop(user_id, None)

    def user_ids(self) -> list[str]:
        return list(self._entries)

    def to_list(self) -> list[dict[str, str]]:
        return [e.to_dict() for e in self._entries.values()]

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries

    def __iter__(self) -> Iterator[ShareEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ShareTable):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f'ShareTable({list(self._entries.values())!r})'


def share(
    board: Board,
    granter_id: str,
    target_user_id: str | None,
    permission: Permission | str,
) -> ShareEntry:
    """Grant (or change) a user's access to a board.

    Raises:
        ForbiddenError: granter is not the owner.
        NotFoundError: target user did not resolve (``None``).
        BadRequestError: invalid permission, or the target is the owner.
    """
    if granter_id != board.owner_id:
        raise ForbiddenError('Only the board owner can share it.')
    if target_user_id is None:
        raise NotFoundError('Target user not found.', code='user_not_found')
    if not isinstance(permission, Permission):
        permission = parse_permission(permission)
    if target_user_id == board.owner_id:
        raise BadRequestError(
            'The owner already has full access to this board.',
            code='share_with_owner',
        )
    return board.shared_with.upsert(ShareEntry(target_user_id, permission))


def unshare(
    board: Board,
    requester_id: str,
    target_user_id: str | None,
) -> ShareEntry:
    """Revoke a user's share entry.

    Raises:
        ForbiddenError: requester is not the owner.
        NotFoundError: no entry exists for the target.
    """
    if requester_id != board.owner_id:
        raise ForbiddenError('Only the board owner can unshare it.')
    removed = board.shared_with.remove(target_user_id) if target_user_id else None
    if removed is None:
        raise NotFoundError(
            'Board is not shared with that user.', code='share_not_found',
        )
    return removed
