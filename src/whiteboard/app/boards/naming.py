"""Per-owner unique board names.

``resolve_unique_name`` is the sequential check: it asks an existence
collaborator whether the owner already has a board with the candidate name
and appends `` (1)``, `` (2)``, ... until the name is free.

Checking and writing are separate store round-trips, so two concurrent
creations with the same base name can both see the name as free. The store
enforces a unique (owner_id, name) constraint and raises ``ConflictError``
on violation; ``write_with_unique_name`` re-resolves against fresh state and
retries the write a bounded number of times.
"""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

from whiteboard.app.errors import ConflictError
from whiteboard.app.observability.logging import get_logger
from whiteboard.app.observability.metrics import NAME_CONFLICT_RETRIES

from .model import DEFAULT_BOARD_NAME

logger = get_logger(__name__)

T = TypeVar('T')

NameExists = Callable[[str, str, 'str | None'], Awaitable[bool]]
"""async (name, owner_id, exclude_board_id) -> bool"""

DEFAULT_CONFLICT_RETRIES = 3


def normalize_board_name(name: str | None) -> str:
    if name is None or not name.strip():
        return DEFAULT_BOARD_NAME
    return name


def suffixed_name(base: str, suffix: int) -> str:
    return f'{base} ({suffix})'


async def resolve_unique_name(
    desired_name: str | None,
    owner_id: str,
    exists: NameExists,
    exclude_board_id: str | None = None,
) -> str:
    """Return the first of ``desired``, ``desired (1)``, ... free for the owner.

    ``exclude_board_id`` lets a board being renamed keep a name that only
    collides with itself.
    """
    base = normalize_board_name(desired_name)
    candidate = base
    suffix = 1
    while await exists(candidate, owner_id, exclude_board_id):
        candidate = suffixed_name(base, suffix)
        suffix += 1
    return candidate


async def write_with_unique_name(
    desired_name: str | None,
    owner_id: str,
    exists: NameExists,
    write: Callable[[str], Awaitable[T]],
    *,
    exclude_board_id: str | None = None,
    retries: int = DEFAULT_CONFLICT_RETRIES,
) -> T:
    """Resolve a unique name and persist with it, renumbering on conflict.

    Raises:
        ConflictError: the store still reported a collision after
            ``retries`` re-resolutions.
    """
    attempt = 0
    while True:
        name = await resolve_unique_name(
            desired_name, owner_id, exists, exclude_board_id,
        )
        try:
            return await write(name)
        except ConflictError:
            if attempt >= retries:
                logger.warning(
                    'name_conflict_exhausted',
                    owner_id=owner_id,
                    name=name,
                    attempts=attempt + 1,
                )
                raise
            attempt += 1
            NAME_CONFLICT_RETRIES.inc()
            logger.info(
                'name_conflict_retry',
                owner_id=owner_id,
                name=name,
                attempt=attempt,
            )
