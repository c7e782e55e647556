"""Observability tests: request ids, structured logs and Prometheus metrics."""

from __future__ import annotations

import io
import json
import logging

import pytest
from httpx import ASGITransport, AsyncClient
from prometheus_client import REGISTRY

from whiteboard.app.main import create_app
from whiteboard.app.observability.logging import (
    configure_logging,
    get_logger,
    request_id_ctx,
)
from whiteboard.app.observability.middleware import (
    _VALID_REQUEST_ID,
    normalize_metric_path,
)
from whiteboard.app.settings import BoardServiceSettings


@pytest.fixture
def app():
    return create_app(BoardServiceSettings(log_json=False))


async def _get(app, path: str, **kwargs):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as client:
        return await client.get(path, **kwargs)


# ── request ids ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_request_id_generated(app):
    resp = await _get(app, '/health')
    assert resp.status_code == 200
    assert _VALID_REQUEST_ID.match(resp.headers['x-request-id'])


@pytest.mark.asyncio
async def test_request_id_propagated(app):
    resp = await _get(app, '/health', headers={'X-Request-ID': 'trace-abc-12345'})
    assert resp.headers['x-request-id'] == 'trace-abc-12345'


@pytest.mark.asyncio
async def test_malformed_request_id_replaced(app):
    resp = await _get(app, '/health', headers={'X-Request-ID': 'bad id!'})
    assert resp.headers['x-request-id'] != 'bad id!'


@pytest.mark.asyncio
async def test_request_id_on_error_responses(app):
    resp = await _get(app, '/api/boards')
    assert resp.status_code == 401
    assert 'x-request-id' in resp.headers


# ── metrics ───────────────────────────────────────────────────────────


def test_board_paths_are_collapsed():
    assert normalize_metric_path('/api/boards/abc-123') == '/api/boards/{id}'
    assert normalize_metric_path('/api/boards/abc-123/share') == '/api/boards/{id}/share'
    assert normalize_metric_path('/api/boards/public') == '/api/boards/public'
    assert normalize_metric_path('/api/boards/recents') == '/api/boards/recents'
    assert normalize_metric_path('/health') == '/health'


@pytest.mark.asyncio
async def test_metrics_endpoint_exposes_counters(app):
    await _get(app, '/health')
    resp = await _get(app, '/metrics')
    assert resp.status_code == 200
    assert resp.headers['content-type'].startswith('text/plain')
    assert 'whiteboard_http_requests_total' in resp.text
    assert 'whiteboard_board_operations_total' in resp.text


@pytest.mark.asyncio
async def test_board_creation_counted(app):
    before = REGISTRY.get_sample_value(
        'whiteboard_board_operations_total',
        {'action': 'create', 'outcome': 'ok'},
    ) or 0.0
    await app.state.deps.board_service.create_board('user-1', 'Counted')
    after = REGISTRY.get_sample_value(
        'whiteboard_board_operations_total',
        {'action': 'create', 'outcome': 'ok'},
    )
    assert after == before + 1


# ── logging ───────────────────────────────────────────────────────────


def test_json_log_lines_carry_request_id():
    configure_logging(level='INFO', json_output=True, force=True)
    stream = io.StringIO()
    root = logging.getLogger()
    root.handlers[0].stream = stream

    token = request_id_ctx.set('req-12345678')
    try:
        get_logger('whiteboard.test').info('board_created', board_id='b1')
    finally:
        request_id_ctx.reset(token)

    entry = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert entry['event'] == 'board_created'
    assert entry['board_id'] == 'b1'
    assert entry['request_id'] == 'req-12345678'
    assert entry['level'] == 'info'
    assert 'timestamp' in entry
    assert entry['service'] == 'whiteboard'


def test_credentials_are_redacted():
    configure_logging(level='INFO', json_output=True, force=True)
    stream = io.StringIO()
    logging.getLogger().handlers[0].stream = stream

    get_logger('whiteboard.test').warning(
        'auth_debug', token='eyJhbGciOi...', service_role_key='svc', user_id='u1',
    )

    entry = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert entry['token'] == '[redacted]'
    assert entry['service_role_key'] == '[redacted]'
    assert entry['user_id'] == 'u1'
