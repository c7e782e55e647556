"""Board domain: permissions, naming, sharing, recents and the service."""

from .model import DEFAULT_BOARD_NAME, Board, User, Visibility, new_board_id
from .naming import resolve_unique_name, write_with_unique_name
from .permissions import Capability, require_capability, resolve_capabilities
from .recents import RECENTS_LIMIT, visit
from .service import BoardService
from .sharing import Permission, ShareEntry, ShareTable, share, unshare

__all__ = [
    'Board',
    'BoardService',
    'Capability',
    'DEFAULT_BOARD_NAME',
    'Permission',
    'RECENTS_LIMIT',
    'ShareEntry',
    'ShareTable',
    'User',
    'Visibility',
    'new_board_id',
    'require_capability',
    'resolve_capabilities',
    'resolve_unique_name',
    'share',
    'unshare',
    'visit',
    'write_with_unique_name',
]
