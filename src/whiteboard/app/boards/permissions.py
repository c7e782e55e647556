"""Capability resolution for boards.

Every read and write on a board is gated here. The resolver is a pure
function of the board and the acting user id (``None`` for anonymous
callers); it performs no I/O.

Precedence:
  1. Owner: view, edit, share, delete.
  2. Public board: view for everyone, plus edit for users holding an
     ``edit`` share entry.
  3. Private board: view (and edit, for ``edit`` entries) for shared users,
     nothing for anyone else.

``share`` and ``delete`` are never granted through the share list.
"""

from __future__ import annotations

from enum import Enum

from whiteboard.app.errors import ForbiddenError

from .model import Board
from .sharing import Permission


class Capability(str, Enum):
    VIEW = 'view'
    EDIT = 'edit'
    SHARE = 'share'
    DELETE = 'delete'


OWNER_CAPABILITIES: frozenset[Capability] = frozenset(Capability)
NO_CAPABILITIES: frozenset[Capability] = frozenset()


def resolve_capabilities(
    board: Board, actor_id: str | None,
) -> frozenset[Capability]:
    if actor_id is not None and actor_id == board.owner_id:
        return OWNER_CAPABILITIES

    entry = board.shared_with.get(actor_id)
    caps: set[Capability] = set()
    if board.is_public or entry is not None:
        caps.add(Capability.VIEW)
    if entry is not None and entry.permission is Permission.EDIT:
        caps.add(Capability.EDIT)
    return frozenset(caps) if caps else NO_CAPABILITIES


def can(board: Board, actor_id: str | None, capability: Capability) -> bool:
    return capability in resolve_capabilities(board, actor_id)


def require_capability(
    board: Board,
    actor_id: str | None,
    *capabilities: Capability,
) -> frozenset[Capability]:
    """Return the actor's capabilities, or raise if any required one is missing."""
    caps = resolve_capabilities(board, actor_id)
    missing = [c.value for c in capabilities if c not in caps]
    if missing:
        raise ForbiddenError(
            f'Missing capability {", ".join(missing)} on board {board.id!r}.',
        )
    return caps
