"""Unit tests for SupabaseBoardRepository.

Uses httpx.MockTransport to verify PostgREST queries without a real Supabase.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from whiteboard.app.boards.model import Board, Visibility
from whiteboard.app.boards.sharing import Permission, ShareEntry
from whiteboard.app.db.board_repo import SupabaseBoardRepository
from whiteboard.app.db.supabase_client import SupabaseClient
from whiteboard.app.errors import ConflictError, UnavailableError

BOARD_ROW = {
    "id": "b1",
    "name": "Trip",
    "owner_id": "u1",
    "data": "",
    "blob_key": None,
    "visibility": "private",
    "created_at": "2024-05-01T10:00:00+00:00",
    "updated_at": "2024-05-01T10:00:00+00:00",
}


def _make_repo(handler) -> SupabaseBoardRepository:
    transport = httpx.MockTransport(handler)
    client = httpx.AsyncClient(transport=transport)
    sc = SupabaseClient(
        supabase_url="https://test.supabase.co",
        service_role_key="svc-key",
        default_schema="app",
        http_client=client,
    )
    return SupabaseBoardRepository(sc)


# ── get ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_get_hydrates_shares():
    requests: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path.endswith("/boards"):
            return httpx.Response(200, json=[BOARD_ROW])
        return httpx.Response(200, json=[
            {"board_id": "b1", "user_id": "u2", "permission": "edit"},
        ])

    repo = _make_repo(handler)
    board = await repo.get("b1")

    assert board is not None
    assert board.name == "Trip"
    assert board.visibility is Visibility.PRIVATE
    assert board.shared_with.get("u2") == ShareEntry("u2", Permission.EDIT)
    assert requests[0].url.params["id"] == "eq.b1"
    assert requests[1].url.path == "/rest/v1/board_shares"
    assert requests[1].url.params["board_id"] == 'in.("b1")'


@pytest.mark.asyncio
async def test_get_missing_returns_none():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    assert await repo.get("missing") is None


# ── create / update ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_posts_board_row():
    seen: dict[str, Any] = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=[BOARD_ROW])

    repo = _make_repo(handler)
    created = await repo.create(Board(id="b1", name="Trip", owner_id="u1"))

    assert created.id == "b1"
    assert seen["body"]["name"] == "Trip"
    assert seen["body"]["owner_id"] == "u1"
    assert seen["body"]["visibility"] == "private"
    assert "shared_with" not in seen["body"]


@pytest.mark.asyncio
async def test_create_unique_violation_is_conflict():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={
            "message": "duplicate key value violates unique constraint",
            "code": "23505",
            "details": "Key (owner_id, name)=(u1, Trip) already exists.",
        })

    repo = _make_repo(handler)
    with pytest.raises(ConflictError) as exc_info:
        await repo.create(Board(id="b1", name="Trip", owner_id="u1"))
    assert exc_info.value.code == "name_conflict"


@pytest.mark.asyncio
async def test_store_failure_is_unavailable():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"message": "boom"})

    repo = _make_repo(handler)
    with pytest.raises(UnavailableError) as exc_info:
        await repo.get("b1")
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_update_patches_fields():
    seen: dict[str, Any] = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PATCH":
            seen["body"] = json.loads(request.content)
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{**BOARD_ROW, "name": "Trip Plan"}])
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    updated = await repo.update("b1", name="Trip Plan")

    assert updated is not None and updated.name == "Trip Plan"
    assert seen["params"] == {"id": "eq.b1"}
    assert seen["body"]["name"] == "Trip Plan"
    assert "updated_at" in seen["body"]


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields():
    async def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    repo = _make_repo(handler)
    with pytest.raises(ValueError):
        await repo.update("b1", owner_id="u2")


# ── name_exists ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_name_exists_with_exclusion():
    seen: dict[str, Any] = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    assert await repo.name_exists("Trip", "u1", exclude_board_id="b1") is False
    assert seen["params"]["owner_id"] == "eq.u1"
    assert seen["params"]["name"] == "eq.Trip"
    assert seen["params"]["id"] == "neq.b1"


# ── delete ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_delete_removes_shares_then_board():
    calls: list[tuple[str, str]] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        if request.url.path.endswith("/boards"):
            return httpx.Response(200, json=[BOARD_ROW])
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    assert await repo.delete("b1") is True
    assert calls == [
        ("DELETE", "/rest/v1/board_shares"),
        ("DELETE", "/rest/v1/boards"),
    ]


# ── shares ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_upsert_share():
    seen: dict[str, Any] = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["params"] = dict(request.url.params)
        return httpx.Response(201, json=[seen["body"]])

    repo = _make_repo(handler)
    saved = await repo.upsert_share("b1", ShareEntry("u2", Permission.VIEW))

    assert saved == ShareEntry("u2", Permission.VIEW)
    assert seen["body"] == {"board_id": "b1", "user_id": "u2", "permission": "view"}
    assert seen["params"] == {"on_conflict": "board_id,user_id"}


@pytest.mark.asyncio
async def test_remove_share_missing_returns_false():
    seen: dict[str, Any] = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    assert await repo.remove_share("b1", "u2") is False
    assert seen["params"] == {"board_id": "eq.b1", "user_id": "eq.u2"}


@pytest.mark.asyncio
async def test_list_shared_with():
    async def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/board_shares") and "user_id" in request.url.params:
            return httpx.Response(200, json=[{"board_id": "b1"}])
        if path.endswith("/boards"):
            assert request.url.params["id"] == 'in.("b1")'
            return httpx.Response(200, json=[BOARD_ROW])
        return httpx.Response(200, json=[
            {"board_id": "b1", "user_id": "u2", "permission": "view"},
        ])

    repo = _make_repo(handler)
    boards = await repo.list_shared_with("u2")
    assert [b.id for b in boards] == ["b1"]
    assert "u2" in boards[0].shared_with


@pytest.mark.asyncio
async def test_list_shared_with_none():
    calls = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    assert await repo.list_shared_with("u2") == []
    assert calls == 1
