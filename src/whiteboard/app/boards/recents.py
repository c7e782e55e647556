"""Recently-visited boards list.

A user's ``recents`` is most-recent-first, de-duplicated and capped at
``RECENTS_LIMIT``. Persisting the result (load, visit, save) is the caller's
job and is last-write-wins under concurrent visits by the same user.
"""

from __future__ import annotations

from typing import Sequence

RECENTS_LIMIT = 10


def visit(current: Sequence[str], board_id: str) -> list[str]:
    """Move ``board_id`` to the front, dropping the least recent past the cap."""
    updated = [board_id]
    updated.extend(b for b in current if b != board_id)
    return updated[:RECENTS_LIMIT]
