"""Board operations at the service boundary.

``BoardService`` ties the pure pieces (permissions, naming, sharing,
recents) to the injected stores. Every operation that touches a board
resolves the actor's capabilities first and aborts on any missing one;
nothing is written before all checks pass.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from whiteboard.app.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    board_not_found,
    user_not_found,
)
from whiteboard.app.observability.logging import get_logger
from whiteboard.app.observability.metrics import (
    BOARD_OPERATIONS_TOTAL,
    PERMISSION_DENIALS_TOTAL,
)

from . import recents, sharing
from .model import Board, User, Visibility, new_board_id, parse_visibility
from .naming import DEFAULT_CONFLICT_RETRIES, write_with_unique_name
from .permissions import Capability, can, require_capability, resolve_capabilities
from .sharing import Permission, ShareEntry

if TYPE_CHECKING:
    from whiteboard.app.protocols import BlobStore, BoardRepository, UserRepository

logger = get_logger(__name__)


class BoardService:
    """Board lifecycle, sharing and recents on top of injected stores.

    Args:
        board_repo: Board store enforcing unique (owner_id, name).
        user_repo: User store.
        blob_store: External blob storage released on board delete.
        name_conflict_retries: Re-resolutions after a store-level name
            conflict before ``ConflictError`` reaches the caller.
    """

    def __init__(
        self,
        board_repo: BoardRepository,
        user_repo: UserRepository,
        blob_store: BlobStore,
        *,
        name_conflict_retries: int = DEFAULT_CONFLICT_RETRIES,
    ) -> None:
        self._boards = board_repo
        self._users = user_repo
        self._blobs = blob_store
        self._retries = name_conflict_retries

    # ── helpers ──────────────────────────────────────────────────────

    async def _load(self, board_id: str) -> Board:
        board = await self._boards.get(board_id)
        if board is None:
            raise board_not_found(board_id)
        return board

    def _require(
        self,
        board: Board,
        actor_id: str | None,
        action: str,
        *capabilities: Capability,
    ) -> None:
        try:
            require_capability(board, actor_id, *capabilities)
        except ForbiddenError:
            PERMISSION_DENIALS_TOTAL.labels(action=action).inc()
            logger.info(
                'permission_denied',
                action=action,
                board_id=board.id,
                actor_id=actor_id,
                required=[c.value for c in capabilities],
            )
            raise

    # ── users ───────────────────────────────────────────────────────

    async def ensure_user(self, user_id: str, email: str | None) -> User | None:
        """Return the caller's user row, creating it on first sight.

        Tokens without an email claim cannot be provisioned; such callers
        must already exist in the user store.
        """
        user = await self._users.get(user_id)
        if user is not None or not email:
            return user
        try:
            user = await self._users.create(
                User(id=user_id, name=email.split('@', 1)[0], email=email),
            )
        except ConflictError:
            # Lost a race with a concurrent first request, or the email
            # belongs to another account.
            return await self._users.get(user_id)
        logger.info('user_provisioned', user_id=user_id)
        return user

    # ── board lifecycle ─────────────────────────────────────────────

    async def create_board(self, owner_id: str, name: str | None = None) -> Board:
        """Create a private, unshared board owned by ``owner_id``."""
        board_id = new_board_id()

        async def _write(unique_name: str) -> Board:
            return await self._boards.create(
                Board(id=board_id, name=unique_name, owner_id=owner_id),
            )

        board = await write_with_unique_name(
            name,
            owner_id,
            self._boards.name_exists,
            _write,
            retries=self._retries,
        )
        BOARD_OPERATIONS_TOTAL.labels(action='create', outcome='ok').inc()
        logger.info('board_created', board_id=board.id, owner_id=owner_id, name=board.name)
        return board

    async def get_board(
        self, board_id: str, actor_id: str | None,
    ) -> tuple[Board, frozenset[Capability]]:
        """Return the board and the actor's capabilities on it."""
        board = await self._load(board_id)
        self._require(board, actor_id, 'view', Capability.VIEW)
        return board, resolve_capabilities(board, actor_id)

    async def update_board(
        self,
        board_id: str,
        actor_id: str,
        *,
        name: str | None = None,
        data: str | None = None,
        blob_key: str | None = None,
        visibility: Visibility | str | None = None,
    ) -> Board:
        """Rename, replace data or its blob reference, or change visibility.

        Renaming and content changes need ``edit``; visibility needs
        ``share``. A new name is only re-resolved when it differs from the
        current one. Replacing the blob reference releases the old blob.
        """
        if name is None and data is None and blob_key is None and visibility is None:
            raise BadRequestError('No fields to update.', code='empty_update')
        if name is not None and not name.strip():
            raise BadRequestError('Board name must not be blank.', code='blank_name')
        if visibility is not None and not isinstance(visibility, Visibility):
            visibility = parse_visibility(visibility)

        board = await self._load(board_id)

        required: list[Capability] = []
        if name is not None or data is not None or blob_key is not None:
            required.append(Capability.EDIT)
        if visibility is not None:
            required.append(Capability.SHARE)
        self._require(board, actor_id, 'update', *required)

        fields: dict[str, Any] = {}
        if data is not None:
            fields['data'] = data
        if blob_key is not None:
            fields['blob_key'] = blob_key
        if visibility is not None:
            fields['visibility'] = visibility.value

        if name is not None and name != board.name:
            async def _write(unique_name: str) -> Board | None:
                return await self._boards.update(board_id, name=unique_name, **fields)

            updated = await write_with_unique_name(
                name,
                board.owner_id,
                self._boards.name_exists,
                _write,
                exclude_board_id=board_id,
                retries=self._retries,
            )
        elif fields:
            updated = await self._boards.update(board_id, **fields)
        else:
            updated = board

        if updated is None:
            raise board_not_found(board_id)
        if board.blob_key and updated.blob_key != board.blob_key:
            await self._blobs.delete(board.blob_key)
        BOARD_OPERATIONS_TOTAL.labels(action='update', outcome='ok').inc()
        logger.info(
            'board_updated',
            board_id=board_id,
            actor_id=actor_id,
            fields=sorted({*fields, *(['name'] if name is not None else [])}),
        )
        return updated

    async def delete_board(self, board_id: str, actor_id: str) -> None:
        """Delete the board and release its external blob, if any."""
        board = await self._load(board_id)
        self._require(board, actor_id, 'delete', Capability.DELETE)

        if not await self._boards.delete(board_id):
            raise board_not_found(board_id)
        if board.blob_key:
            await self._blobs.delete(board.blob_key)
        BOARD_OPERATIONS_TOTAL.labels(action='delete', outcome='ok').inc()
        logger.info('board_deleted', board_id=board_id, blob_released=bool(board.blob_key))

    # ── sharing ─────────────────────────────────────────────────────

    async def share_board(
        self,
        board_id: str,
        owner_id: str,
        target_email: str,
        permission: Permission | str,
    ) -> ShareEntry:
        board = await self._load(board_id)
        target = await self._users.get_by_email(target_email)
        try:
            entry = sharing.share(
                board, owner_id, target.id if target else None, permission,
            )
        except ForbiddenError:
            PERMISSION_DENIALS_TOTAL.labels(action='share').inc()
            raise
        saved = await self._boards.upsert_share(board_id, entry)
        BOARD_OPERATIONS_TOTAL.labels(action='share', outcome='ok').inc()
        logger.info(
            'board_shared',
            board_id=board_id,
            user_id=saved.user_id,
            permission=saved.permission.value,
        )
        return saved

    async def unshare_board(
        self, board_id: str, owner_id: str, target_email: str,
    ) -> ShareEntry:
        board = await self._load(board_id)
        target = await self._users.get_by_email(target_email)
        try:
            removed = sharing.unshare(board, owner_id, target.id if target else None)
        except ForbiddenError:
            PERMISSION_DENIALS_TOTAL.labels(action='unshare').inc()
            raise
        if not await self._boards.remove_share(board_id, removed.user_id):
            raise NotFoundError(
                'Board is not shared with that user.', code='share_not_found',
            )
        BOARD_OPERATIONS_TOTAL.labels(action='unshare', outcome='ok').inc()
        logger.info('board_unshared', board_id=board_id, user_id=removed.user_id)
        return removed

    # ── listings ────────────────────────────────────────────────────

    async def list_owned(self, owner_id: str) -> list[Board]:
        return await self._boards.list_for_owner(owner_id)

    async def list_public(self) -> list[Board]:
        return await self._boards.list_public()

    async def list_shared_with(self, user_id: str) -> list[Board]:
        return await self._boards.list_shared_with(user_id)

    # ── recents ─────────────────────────────────────────────────────

    async def record_visit(self, user_id: str, board_id: str) -> list[str]:
        """Move ``board_id`` to the front of the user's recents and persist.

        Load-compute-save is not atomic; concurrent visits by the same user
        are last-write-wins.
        """
        user = await self._users.get(user_id)
        if user is None:
            raise user_not_found(user_id)
        updated_recents = recents.visit(user.recents, board_id)
        saved = await self._users.update_recents(user_id, updated_recents)
        if saved is None:
            raise user_not_found(user_id)
        logger.debug('recent_visit_recorded', user_id=user_id, board_id=board_id)
        return saved.recents

    async def list_recents(self, user_id: str) -> list[Board]:
        """Resolve the user's recents to boards, most recent first.

        Deleted boards and boards the user can no longer view are skipped;
        the stored id list itself is left as is.
        """
        user = await self._users.get(user_id)
        if user is None:
            raise user_not_found(user_id)
        boards: list[Board] = []
        for board_id in user.recents:
            board = await self._boards.get(board_id)
            if board is not None and can(board, user_id, Capability.VIEW):
                boards.append(board)
        return boards
