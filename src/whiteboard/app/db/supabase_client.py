"""Async Supabase client (PostgREST tables + Storage objects).

This is the single point of Supabase HTTP interaction for the board and
user repositories and the blob store.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

import httpx

from .errors import (
    SupabaseAuthError,
    SupabaseConflictError,
    SupabaseError,
    SupabaseNotFoundError,
    SupabaseTransportError,
)


@dataclass(frozen=True, slots=True)
class PostgrestFilter:
    column: str
    op: str
    value: Any


Filters = Sequence[PostgrestFilter] | Mapping[str, tuple[str, Any] | Any] | None


def _encode_filter_value(op: str, value: Any) -> str:
    if op == "is":
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    if op == "in":
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError("in operator requires an iterable of values")
        items = []
        for v in value:
            if isinstance(v, str):
                # Quoted, JSON-escaped strings inside `in.(...)`.
                items.append(json.dumps(v))
            elif v is None:
                items.append("null")
            else:
                items.append(str(v))
        return f"({','.join(items)})"

    if value is None:
        raise ValueError(f"{op} does not support None; use op='is' with value=None")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def filters_to_params(filters: Filters) -> dict[str, str]:
    if not filters:
        return {}

    params: dict[str, str] = {}
    if isinstance(filters, Mapping):
        items: Iterable[tuple[str, Any]] = filters.items()
        for col, spec in items:
            if isinstance(spec, tuple) and len(spec) == 2:
                op, val = spec
            else:
                op, val = "eq", spec
            params[str(col)] = f"{op}.{_encode_filter_value(str(op), val)}"
        return params

    for f in filters:
        params[f.column] = f"{f.op}.{_encode_filter_value(f.op, f.value)}"
    return params


class SupabaseClient:
    """Minimal async service-role client.

    Args:
        supabase_url: Project URL (``https://xyz.supabase.co``).
        service_role_key: Service-role key. Never logged.
        default_schema: Schema for unqualified table names.
        http_client: Injected ``httpx.AsyncClient`` (tests use MockTransport).
        timeout_seconds: Per-request timeout.
    """

    def __init__(
        self,
        *,
        supabase_url: str,
        service_role_key: str,
        default_schema: str = "public",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not supabase_url:
            raise ValueError("supabase_url is required")
        if not service_role_key:
            raise ValueError("service_role_key is required")

        self._supabase_url = supabase_url.rstrip("/")
        self._service_role_key = service_role_key
        self._default_schema = default_schema or "public"
        self._timeout_seconds = float(timeout_seconds)
        self._client = http_client or httpx.AsyncClient()

    @property
    def base_rest_url(self) -> str:
        return f"{self._supabase_url}/rest/v1"

    @property
    def base_storage_url(self) -> str:
        return f"{self._supabase_url}/storage/v1"

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, method: str, *, schema: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
        }
        if schema:
            headers["Accept-Profile"] = schema
            if method in ("POST", "PATCH", "PUT", "DELETE"):
                headers["Content-Profile"] = schema
        return headers

    def _split_table(self, table: str) -> tuple[str, str]:
        # "app.boards" and "boards" are both accepted.
        if "." in table:
            schema, name = table.split(".", 1)
            return schema.strip(), name.strip()
        return self._default_schema, table.strip()

    @staticmethod
    def _raise_for_error(resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        message = resp.text
        code = details = hint = None
        try:
            payload = resp.json()
            if isinstance(payload, dict):
                message = payload.get("message") or payload.get("error") or message
                code = payload.get("code")
                details = payload.get("details")
                hint = payload.get("hint")
        except ValueError:
            pass

        err_cls: type[SupabaseError]
        if resp.status_code in (401, 403):
            err_cls = SupabaseAuthError
        elif resp.status_code == 404:
            err_cls = SupabaseNotFoundError
        elif resp.status_code == 409 or code == "23505":
            err_cls = SupabaseConflictError
        else:
            err_cls = SupabaseError

        raise err_cls(
            status_code=resp.status_code,
            message=message,
            code=code,
            details=details,
            hint=hint,
        )

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(
                method, url, timeout=self._timeout_seconds, **kwargs,
            )
        except httpx.HTTPError as exc:
            raise SupabaseTransportError(
                status_code=503, message=f"{type(exc).__name__}: {exc}",
            ) from exc
        self._raise_for_error(resp)
        return resp

    async def _table_request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> list[dict[str, Any]]:
        schema, table_name = self._split_table(table)
        headers = self._headers(method, schema=schema)
        if prefer:
            headers["Prefer"] = prefer
        resp = await self._send(
            method,
            f"{self.base_rest_url}/{table_name}",
            params=params,
            json=json_body,
            headers=headers,
        )
        payload = resp.json()
        if not isinstance(payload, list):
            raise SupabaseError(
                status_code=502,
                message=f"expected list response from {method} {table_name}",
            )
        return payload

    async def select(
        self,
        table: str,
        filters: Filters = None,
        *,
        columns: str = "*",
        limit: int | None = None,
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        params = filters_to_params(filters)
        params["select"] = columns
        if limit is not None:
            params["limit"] = str(int(limit))
        if order:
            params["order"] = order
        return await self._table_request("GET", table, params=params)

    async def insert(
        self,
        table: str,
        data: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        *,
        upsert: bool = False,
        on_conflict: str | None = None,
    ) -> list[dict[str, Any]]:
        prefer = "return=representation"
        if upsert:
            prefer += ",resolution=merge-duplicates"
        params = {"on_conflict": on_conflict} if on_conflict else None
        return await self._table_request(
            "POST", table, params=params, json_body=data, prefer=prefer,
        )

    async def update(
        self,
        table: str,
        filters: Filters,
        data: Mapping[str, Any],
    ) -> list[dict[str, Any]]:
        return await self._table_request(
            "PATCH",
            table,
            params=filters_to_params(filters),
            json_body=data,
            prefer="return=representation",
        )

    async def delete(self, table: str, filters: Filters) -> list[dict[str, Any]]:
        if not filters:
            # PostgREST would delete every row.
            raise ValueError("delete requires at least one filter")
        return await self._table_request(
            "DELETE",
            table,
            params=filters_to_params(filters),
            prefer="return=representation",
        )

    async def remove_objects(self, bucket: str, paths: Sequence[str]) -> list[dict[str, Any]]:
        """Delete objects from a Storage bucket. Missing objects are ignored."""
        resp = await self._send(
            "DELETE",
            f"{self.base_storage_url}/object/{bucket}",
            json={"prefixes": list(paths)},
            headers=self._headers("DELETE"),
        )
        payload = resp.json()
        return payload if isinstance(payload, list) else []
