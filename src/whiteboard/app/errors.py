"""Board service error taxonomy.

Every failure the core can surface is one of these tagged errors. Each
carries a machine-readable ``code``, a human ``detail`` and the HTTP status
the application factory renders it with.
"""

from __future__ import annotations


class BoardServiceError(Exception):
    """Base error for board/user operations."""

    status_code: int = 500
    default_code: str = 'internal_error'

    def __init__(self, detail: str = '', *, code: str | None = None) -> None:
        self.code = code or self.default_code
        self.detail = detail
        super().__init__(f'{self.code}: {detail}' if detail else self.code)

    def to_payload(self) -> dict[str, str]:
        return {'error': self.code, 'detail': self.detail}


class NotFoundError(BoardServiceError):
    """Referenced board, user or share entry does not exist."""

    status_code = 404
    default_code = 'not_found'


class ForbiddenError(BoardServiceError):
    """Actor lacks the capability the operation requires."""

    status_code = 403
    default_code = 'forbidden'


class ConflictError(BoardServiceError):
    """Per-owner name uniqueness violated at the store layer."""

    status_code = 409
    default_code = 'name_conflict'


class BadRequestError(BoardServiceError):
    """Malformed input (invalid permission, missing fields)."""

    status_code = 400
    default_code = 'bad_request'


class UnavailableError(BoardServiceError):
    """An external collaborator (store, blob storage) failed."""

    status_code = 503
    default_code = 'store_unavailable'


def board_not_found(board_id: str) -> NotFoundError:
    return NotFoundError(f'Board {board_id!r} not found.', code='board_not_found')


def user_not_found(user_ref: str) -> NotFoundError:
    return NotFoundError(f'User {user_ref!r} not found.', code='user_not_found')
