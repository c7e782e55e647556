"""Shared fixtures: in-memory stores seeded with three users."""

from __future__ import annotations

import pytest

from seed import seeded_user_repo
from whiteboard.app.boards.service import BoardService
from whiteboard.app.inmemory import (
    InMemoryBlobStore,
    InMemoryBoardRepository,
    InMemoryUserRepository,
)


@pytest.fixture
def board_repo() -> InMemoryBoardRepository:
    return InMemoryBoardRepository()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return seeded_user_repo()


@pytest.fixture
def service(board_repo, user_repo, blob_store) -> BoardService:
    return BoardService(board_repo, user_repo, blob_store)
