"""Unit tests for board capability resolution.

Validates:
  - Owner holds every capability
  - Share entries grant view / edit only
  - Public boards are viewable by anyone, including anonymous callers
  - require_capability raises ForbiddenError naming the missing capability
"""

from __future__ import annotations

import pytest

from whiteboard.app.boards.model import Board, Visibility
from whiteboard.app.boards.permissions import (
    NO_CAPABILITIES,
    OWNER_CAPABILITIES,
    Capability,
    can,
    require_capability,
    resolve_capabilities,
)
from whiteboard.app.boards.sharing import Permission, ShareEntry, ShareTable
from whiteboard.app.errors import ForbiddenError


def _board(visibility: Visibility = Visibility.PRIVATE, shares=()) -> Board:
    return Board(
        id='b1',
        name='Trip',
        owner_id='owner',
        visibility=visibility,
        shared_with=ShareTable(shares),
    )


class TestResolveCapabilities:
    def test_owner_has_all(self):
        assert resolve_capabilities(_board(), 'owner') == OWNER_CAPABILITIES
        assert resolve_capabilities(_board(Visibility.PUBLIC), 'owner') == {
            Capability.VIEW, Capability.EDIT, Capability.SHARE, Capability.DELETE,
        }

    def test_stranger_on_private_board_has_nothing(self):
        assert resolve_capabilities(_board(), 'stranger') == NO_CAPABILITIES

    def test_anonymous_on_private_board_has_nothing(self):
        assert resolve_capabilities(_board(), None) == NO_CAPABILITIES

    def test_view_entry(self):
        board = _board(shares=[ShareEntry('u2', Permission.VIEW)])
        assert resolve_capabilities(board, 'u2') == {Capability.VIEW}

    def test_edit_entry(self):
        board = _board(shares=[ShareEntry('u2', Permission.EDIT)])
        assert resolve_capabilities(board, 'u2') == {Capability.VIEW, Capability.EDIT}

    def test_public_board_view_for_everyone(self):
        board = _board(Visibility.PUBLIC)
        assert resolve_capabilities(board, 'stranger') == {Capability.VIEW}
        assert resolve_capabilities(board, None) == {Capability.VIEW}

    def test_public_board_with_edit_entry(self):
        board = _board(Visibility.PUBLIC, [ShareEntry('u2', Permission.EDIT)])
        assert resolve_capabilities(board, 'u2') == {Capability.VIEW, Capability.EDIT}

    def test_share_entries_never_grant_share_or_delete(self):
        board = _board(shares=[ShareEntry('u2', Permission.EDIT)])
        assert not can(board, 'u2', Capability.SHARE)
        assert not can(board, 'u2', Capability.DELETE)


class TestRequireCapability:
    def test_returns_caps_when_satisfied(self):
        caps = require_capability(_board(), 'owner', Capability.DELETE)
        assert caps == OWNER_CAPABILITIES

    def test_raises_for_missing(self):
        board = _board(shares=[ShareEntry('u2', Permission.VIEW)])
        with pytest.raises(ForbiddenError) as exc_info:
            require_capability(board, 'u2', Capability.VIEW, Capability.EDIT)
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Missing capability edit on board 'b1'."

    def test_no_capabilities_required_passes(self):
        assert require_capability(_board(), 'stranger') == NO_CAPABILITIES
